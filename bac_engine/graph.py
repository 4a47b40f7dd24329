"""
BAC-over-time graph. Produces an image file or returns data for web/mobile.
"""

from pathlib import Path
from typing import BinaryIO, List, Tuple, Union

from bac_engine.events import hours_between
from bac_engine.session import Session


def curve_data(session: Session) -> List[Tuple[float, float]]:
    """(hours_from_start, bac_percent) for use in any frontend."""
    return [(round(hours_between(session.start_time, t), 4), round(bac, 5)) for t, bac in session.bac_series]


def save_bac_graph(
    session: Session,
    output: Union[str, BinaryIO] = "bac_graph.png",
    title: str = "BAC over time",
) -> Union[str, BinaryIO]:
    """
    Plot the session's BAC curve with matplotlib and save it as PNG.
    `output` is a path or a binary file object. Returns `output`.
    """
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError("matplotlib is required for save_bac_graph. pip install matplotlib")

    points = curve_data(session)
    times, bacs = zip(*points)
    config = session.config

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(times, bacs, color="#2563eb", linewidth=2, label="BAC")
    ax.fill_between(times, bacs, alpha=0.2, color="#2563eb")
    ax.axhline(
        y=config.legal_threshold,
        color="#dc2626",
        linestyle="--",
        linewidth=1,
        label=f"Legal limit ({config.legal_threshold:.2f}%)",
    )
    ax.axhline(y=config.danger_threshold, color="#f97316", linestyle=":", linewidth=1, label="Danger")
    ax.set_xlabel("Hours from start")
    ax.set_ylabel("BAC (%)")
    ax.set_title(title)
    ax.legend(loc="upper right")
    ax.set_ylim(bottom=0)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    if isinstance(output, str):
        Path(output).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output, dpi=150, format="png")
    plt.close(fig)
    return output
