"""
Dataset of spectrum files in a directory.
"""

import logging
from pathlib import Path

from spectraweaver.spectra.spectrum import Spectrum

from .base import DatasetConstructionError
from .files import FileEntry, FileIndexedDataset

logger = logging.getLogger(__name__)


class DirectoryDataset(FileIndexedDataset):
    """
    Every ``*.csv`` spectrum in a directory, in file name order.

    Example:
        dataset = DirectoryDataset("measurements/", select_labels=["r0p0"])
    """

    kind = "dir"

    def __init__(self, source, **kwargs):
        super().__init__(source, **kwargs)
        directory = Path(self.source)
        if not directory.is_dir():
            raise DatasetConstructionError(f"Can not open directory {directory}")

        for path in sorted(directory.glob("*.csv")):
            if not path.is_file():
                continue
            try:
                spectrum = Spectrum.load(path)
            except self.LOAD_ERRORS as e:
                logger.warning(f"Unable to load {path}: {e}")
                continue
            self._register(spectrum, str(path))

        self._finish_scan()

    def _load_entry(self, entry: FileEntry) -> Spectrum:
        return Spectrum.load(entry.locator)
