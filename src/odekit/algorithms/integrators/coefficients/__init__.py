"""Butcher tableaus of the Runge-Kutta methods."""
