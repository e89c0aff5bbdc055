"""
Nyquist plots of exported spectra.

Figures are built with the object oriented matplotlib API on an Agg canvas;
pyplot's global figure state is not safe to share between export workers.
"""

import io
import logging
from pathlib import Path
from typing import Union

from spectraweaver.spectra.spectrum import Spectrum

logger = logging.getLogger(__name__)

# Third-party visualization imports (optional)
try:
    import matplotlib
    matplotlib.use('Agg')  # Non-interactive backend for server environments
    from matplotlib.backends.backend_agg import FigureCanvasAgg
    from matplotlib.figure import Figure
    VISUALIZATION_AVAILABLE = True
except (ImportError, OSError, RuntimeError):
    VISUALIZATION_AVAILABLE = False


def nyquist_png(spectrum: Spectrum, dpi: int = 100) -> bytes:
    """Render the Nyquist plot (-Im over Re) of ``spectrum`` as PNG bytes."""
    if not VISUALIZATION_AVAILABLE:
        raise RuntimeError("Image export requires matplotlib: pip install matplotlib")

    fig = Figure(figsize=(5, 4), dpi=dpi)
    FigureCanvasAgg(fig)
    ax = fig.add_subplot(1, 1, 1)
    ax.plot(spectrum.impedance.real, -spectrum.impedance.imag, marker='.', linewidth=1)
    ax.set_xlabel("Re(Z)")
    ax.set_ylabel("-Im(Z)")
    ax.set_title(spectrum.model or "spectrum", fontsize=9)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()

    buffer = io.BytesIO()
    fig.savefig(buffer, format='png')
    return buffer.getvalue()


def save_nyquist(spectrum: Spectrum, path: Union[str, Path]):
    """Write the Nyquist plot of ``spectrum`` to ``path``."""
    with open(path, 'wb') as f:
        f.write(nyquist_png(spectrum))
