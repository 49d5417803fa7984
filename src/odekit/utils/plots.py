from pathlib import Path
from typing import Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np

from odekit.algorithms.integrators.types import IntegrationResult
from odekit.utils.io.common import _ensure_dir


def plot_trajectory(
    result: IntegrationResult,
    *,
    components: Optional[Sequence[int]] = None,
    labels: Optional[Sequence[str]] = None,
    title: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
    figsize: Tuple[float, float] = (10, 6),
    dark_mode: bool = True,
    save: bool = False,
    filepath: "str | Path" = "trajectory.png",
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes]:
    """
    Draw the sampled states of an integration result against time.

    Parameters
    ----------
    result : :class:`~odekit.algorithms.integrators.types.IntegrationResult`
        Result whose output buffer is plotted.
    components : sequence of int, optional
        State components to draw. All by default.
    labels : sequence of str, optional
        Legend labels, one per drawn component.
    title : str, optional
        Axes title.
    ax : matplotlib.axes.Axes, optional
        Axes to draw into. A new figure is created when omitted.
    figsize : tuple, default=(10, 6)
        Figure size in inches, used only when *ax* is None.
    dark_mode : bool, default=True
        Apply the dark styling of :func:`_set_dark_mode`.
    save : bool, default=False
        Whether to write the figure to *filepath*.
    filepath : str or pathlib.Path, default="trajectory.png"
        Destination of the saved figure.
    show : bool, default=False
        Call :func:`matplotlib.pyplot.show` once drawn.

    Returns
    -------
    tuple
        ``(fig, ax)``.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    states = np.asarray(result.states)
    if components is None:
        components = range(states.shape[1])
    components = list(components)
    show_legend = len(components) > 1 or labels is not None
    if labels is None:
        labels = ["y" if states.shape[1] == 1 else f"y[{i}]" for i in components]
    if len(labels) != len(components):
        raise ValueError(f"Expected {len(components)} labels, got {len(labels)}")

    for idx, label in zip(components, labels):
        ax.plot(result.times, states[:, idx], marker="o", markersize=3, linewidth=1.5, label=label)

    ax.set_xlabel("t")
    ax.set_ylabel("y(t)")
    if show_legend:
        ax.legend()

    if dark_mode:
        _set_dark_mode(fig, ax, title=title)
    elif title:
        ax.set_title(title)

    if save:
        filepath = Path(filepath)
        _ensure_dir(filepath.parent)
        fig.savefig(filepath, dpi=150, bbox_inches="tight", facecolor=fig.get_facecolor())

    if show:
        plt.show()

    return fig, ax


def _set_dark_mode(fig: plt.Figure, ax: plt.Axes, title: Optional[str] = None):
    """
    Apply dark mode styling to the figure and axes.

    Parameters
    ----------
    fig : matplotlib.figure.Figure
        The figure to apply dark mode styling to.
    ax : matplotlib.axes.Axes
        The 2D axes to apply dark mode styling to.
    title : str, optional
        The title to set with appropriate dark mode styling.
    """
    text_color = 'white'
    grid_color = '#555555'

    fig.patch.set_facecolor('black')
    ax.set_facecolor('black')

    ax.xaxis.label.set_color(text_color)
    ax.yaxis.label.set_color(text_color)
    ax.tick_params(axis='x', colors=text_color, which='both')
    ax.tick_params(axis='y', colors=text_color, which='both')

    ax.grid(True, color=grid_color, linestyle=':', linewidth=0.5)
    for spine_key in ['top', 'bottom', 'left', 'right']:
        ax.spines[spine_key].set_color(text_color)
        ax.spines[spine_key].set_linewidth(0.5)

    if title:
        ax.set_title(title, color=text_color)

    legend = ax.get_legend()
    if legend:
        frame = legend.get_frame()
        frame.set_facecolor('#111111')
        frame.set_edgecolor(text_color)
        for text_obj in legend.get_texts():
            text_obj.set_color(text_color)
