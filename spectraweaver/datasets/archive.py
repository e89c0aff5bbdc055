"""
Dataset of spectrum files packed into a (optionally compressed) tar archive.

The construction scan records each member's payload offset and size. Reads
seek straight to that offset through the archive's file object, so every
dataset handle keeps its own open archive.
"""

import logging
import tarfile
from typing import Optional

from spectraweaver.spectra.spectrum import Spectrum

from .base import DatasetConstructionError
from .files import FileEntry, FileIndexedDataset

logger = logging.getLogger(__name__)


class ArchiveDataset(FileIndexedDataset):
    """Every regular member of a ``.tar`` or ``.tar.gz`` archive, in archive order."""

    kind = "tar"

    def __init__(self, source, **kwargs):
        super().__init__(source, **kwargs)
        self._archive: Optional[tarfile.TarFile] = None

        try:
            with tarfile.open(self.source, "r:*") as archive:
                for member in archive:
                    if not member.isreg():
                        continue
                    try:
                        payload = archive.extractfile(member).read()
                        spectrum = Spectrum.from_bytes(payload)
                    except self.LOAD_ERRORS as e:
                        logger.warning(f"Unable to load {member.name} from {self.source}: {e}")
                        continue
                    self._register(spectrum, member.name, member.offset_data, member.size)
        except (OSError, tarfile.TarError) as e:
            raise DatasetConstructionError(f"Can not open archive {self.source}: {e}") from e

        self._finish_scan()

    def _handle(self) -> tarfile.TarFile:
        if self._archive is None:
            self._archive = tarfile.open(self.source, "r:*")
        return self._archive

    def _load_entry(self, entry: FileEntry) -> Spectrum:
        fileobj = self._handle().fileobj
        fileobj.seek(entry.offset)
        payload = fileobj.read(entry.length)
        if len(payload) != entry.length:
            raise OSError(f"Short read for {entry.locator}: "
                          f"expected {entry.length} bytes, got {len(payload)}")
        return Spectrum.from_bytes(payload)

    def _after_clone(self):
        self._archive = None

    def close(self):
        if self._archive is not None:
            self._archive.close()
            self._archive = None
