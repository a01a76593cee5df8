"""
Module for drawing the QA histograms of a registry

Every histogram of a registry goes to one page of a multipage PDF:
1D histograms as steps, 2D histograms as colour maps.

Example usage:
    plotter = QAPlotter(output_dir="plots")
    plotter.plot_registry(task.phi_registry)
"""

import logging
import re
import warnings
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import mplhep as hep  # noqa: E402
from matplotlib.backends.backend_pdf import PdfPages  # noqa: E402

from .histogram_registry import HistogramRegistry  # noqa: E402

warnings.filterwarnings('ignore', category=UserWarning, module='matplotlib')
logging.getLogger('matplotlib.font_manager').setLevel(logging.ERROR)

matplotlib.rcParams['font.family'] = 'sans-serif'
matplotlib.rcParams['font.sans-serif'] = ['DejaVu Sans', 'Arial', 'Helvetica', 'sans-serif']

plt.style.use(hep.style.ALICE)

matplotlib.rcParams['font.family'] = 'sans-serif'


def root_to_mathtext(label):
    """Translate ROOT TLatex markup (``#it{p}_{T}``) to matplotlib mathtext"""
    if not label:
        return ""
    if "#" not in label and "_{" not in label and "^{" not in label:
        return label
    text = re.sub(r"#it\{([^}]*)\}", r"\1", label)
    text = text.replace("#", "\\")
    text = text.replace(" ", r"\ ")
    return f"${text}$"


class QAPlotter:
    """Class for rendering histogram registries"""

    def __init__(self, output_dir):
        """
        Initialize with output directory

        Parameters:
        - output_dir: Directory to save plots
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("FemtoPhi.QAPlotter")

    def plot_registry(self, registry: HistogramRegistry, filename=None):
        """
        Draw every histogram of ``registry`` into one PDF

        Parameters:
        - registry: HistogramRegistry to draw
        - filename: PDF name (default: <registry name>.pdf)

        Returns:
        - Path of the written PDF
        """
        pdf_path = self.output_dir / (filename or f"{registry.name}.pdf")
        n_pages = 0
        with PdfPages(pdf_path) as pdf:
            for path in registry:
                fig = self._draw(registry, path)
                if fig is None:
                    continue
                pdf.savefig(fig)
                plt.close(fig)
                n_pages += 1
        self.logger.info(f"Created plot: {pdf_path} ({n_pages} pages)")
        return pdf_path

    def _draw(self, registry, path):
        histogram = registry.get(path)
        spec = registry.spec(path)
        xlabel = root_to_mathtext(histogram.axes[0].label)

        fig, ax = plt.subplots(figsize=(10, 7))
        if spec.ndim == 1:
            hep.histplot(histogram, ax=ax, histtype="step", color="black")
            ax.set_ylabel("Entries")
        elif spec.ndim == 2:
            hep.hist2dplot(histogram, ax=ax, cmin=1)
            ax.set_ylabel(root_to_mathtext(histogram.axes[1].label))
        else:
            self.logger.warning(f"Skipping {path}: {spec.ndim}D histograms are not drawn")
            plt.close(fig)
            return None

        ax.set_xlabel(xlabel)
        title = f"{registry.name}/{path}"
        if "pdg_code" in spec.metadata:
            title += f" (PDG {spec.metadata['pdg_code']})"
        ax.set_title(title, fontsize=12)
        ax.text(0.98, 0.95, f"Entries: {registry.entries(path)}", transform=ax.transAxes,
                ha="right", va="top", fontsize=11)
        fig.tight_layout()
        return fig
