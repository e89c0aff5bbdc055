#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Export sinks: where accepted examples are written.

File names are derived from the spectrum content so identical spectra map to
the same name; a content-hash collision between different spectra is
resolved by probing neighbouring hash values. Two backends are provided:
one file per example in ``train/`` and ``test/`` directories, or one tar
archive per split.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

import hashlib
import io
import json
import logging
import tarfile
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Sequence, Set

from spectraweaver.spectra.registry import purge_param_brackets
from spectraweaver.spectra.spectrum import Spectrum

from .plotting import nyquist_png, save_nyquist

logger = logging.getLogger(__name__)

HASH_MODULUS = 2 ** 64
METADATA_NAME = "meta.json"
# keeps "<model>_<hash>.csv" well below the usual 255 byte file name limit
MAX_MODEL_NAME_BYTES = 200


class SinkOpenError(OSError):
    """An output location for ``role`` could not be prepared."""

    def __init__(self, role: str, message: str):
        super().__init__(message)
        self.role = role


# ============================================================================
#                               METADATA
# ============================================================================

@dataclass
class DatasetMetadata:
    """Metadata written once per split after the export finished."""

    dataset_type: str
    configuration: str
    size: int
    role: str
    seed: int
    class_names: List[str] = field(default_factory=list)
    class_counts: List[int] = field(default_factory=list)
    description: str = ""
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def save(self, output_path: Path):
        """Save metadata to JSON file."""
        with open(output_path, 'w') as f:
            f.write(self.to_json())

    @classmethod
    def load(cls, metadata_path: Path) -> 'DatasetMetadata':
        """Load metadata from JSON file."""
        with open(metadata_path, 'r') as f:
            data = json.load(f)
        return cls(**data)


# ============================================================================
#                               FILE NAMES
# ============================================================================

def content_hash(payload: bytes) -> int:
    """64 bit BLAKE2b digest of ``payload``."""
    return int.from_bytes(hashlib.blake2b(payload, digest_size=8).digest(), 'big')


class FilenameRegistry:
    """Set of file names already handed out during one export."""

    def __init__(self):
        self._lock = threading.Lock()
        self._names: Set[str] = set()

    @staticmethod
    def make_name(model_label: str, hash_value: int) -> str:
        model = purge_param_brackets(model_label).replace('/', '_') or "unknown"
        model = model.encode('utf-8')[:MAX_MODEL_NAME_BYTES].decode('utf-8', 'ignore')
        return f"{model}_{hash_value:016x}.csv"

    def claim(self, model_label: str, payload: bytes) -> str:
        """
        Reserve a unique name for a spectrum.

        The content hash is offset by k = 1, 2, ... (mod 2^64) until the
        name is unused.
        """
        base = content_hash(payload)
        with self._lock:
            offset = 0
            name = self.make_name(model_label, base)
            while name in self._names:
                offset += 1
                name = self.make_name(model_label, (base + offset) % HASH_MODULUS)
            self._names.add(name)

        if offset:
            logger.warning(f"Hash collision for {model_label}, resolved after {offset} probes")
        return name

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._names

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)


# ============================================================================
#                               SINKS
# ============================================================================

class SpectrumSink(ABC):
    """Thread safe destination for exported spectra."""

    def __init__(self, roles: Sequence[str], images: bool = False):
        self.roles = list(roles)
        self.images = images
        self.names = FilenameRegistry()
        self._count_lock = threading.Lock()
        self._class_counts: Dict[str, Dict[int, int]] = {role: {} for role in self.roles}

    def write(self, spectrum: Spectrum, role: str) -> str:
        """Write one example to the ``role`` split and return its name."""
        if role not in self._class_counts:
            raise ValueError(f"Sink has no '{role}' split")
        name = self._write(spectrum, role)
        with self._count_lock:
            counts = self._class_counts[role]
            counts[spectrum.class_index] = counts.get(spectrum.class_index, 0) + 1
        return name

    def written(self, role: str) -> Dict[int, int]:
        """Examples written per class for ``role``."""
        with self._count_lock:
            return dict(self._class_counts.get(role, {}))

    def total_written(self, role: str) -> int:
        return sum(self.written(role).values())

    def finalize(self, metadata: Dict[str, DatasetMetadata]):
        """Write one metadata record per split and release the outputs."""
        try:
            for role, record in metadata.items():
                self._write_metadata(role, record)
        finally:
            self.close()

    @abstractmethod
    def _write(self, spectrum: Spectrum, role: str) -> str:
        """Store one spectrum, returning the name it was stored under."""

    @abstractmethod
    def _write_metadata(self, role: str, metadata: DatasetMetadata):
        """Store the metadata record of one split."""

    def close(self):
        pass


class DirectorySink(SpectrumSink):
    """
    One file per example below ``<output>/train`` and ``<output>/test``.

    Files are created exclusively; a name already present on disk (from an
    earlier export into the same directory) triggers another probe.
    """

    def __init__(self, output_dir: Path, roles: Sequence[str], images: bool = False):
        super().__init__(roles, images)
        self.output_dir = Path(output_dir)
        self.directories: Dict[str, Path] = {}
        for role in self.roles:
            directory = self.output_dir / role
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise SinkOpenError(role, f"Could not create directory {directory}: {e}") from e
            self.directories[role] = directory

    def _write(self, spectrum: Spectrum, role: str) -> str:
        payload = spectrum.raw_bytes()
        while True:
            name = self.names.claim(spectrum.model, payload)
            path = self.directories[role] / name
            try:
                with open(path, 'x', encoding='utf-8') as f:
                    spectrum.save_to_stream(f)
            except FileExistsError:
                logger.warning(f"{path} already exists, probing for another name")
                continue
            break

        if self.images:
            save_nyquist(spectrum, path.with_suffix('.png'))
        return name

    def _write_metadata(self, role: str, metadata: DatasetMetadata):
        metadata.save(self.directories[role] / METADATA_NAME)


class ArchiveSink(SpectrumSink):
    """One tar archive per split: ``<prefix>_train.tar[.gz]`` and ``<prefix>_test.tar[.gz]``."""

    def __init__(self, prefix: Path, roles: Sequence[str], compress: bool = False,
                 images: bool = False):
        super().__init__(roles, images)
        self.prefix = str(prefix)
        self.compress = compress
        self.paths: Dict[str, Path] = {}
        self._archives: Dict[str, tarfile.TarFile] = {}
        self._lock = threading.Lock()

        suffix = '.tar.gz' if compress else '.tar'
        mode = 'w:gz' if compress else 'w'
        try:
            for role in self.roles:
                path = Path(f"{self.prefix}_{role}{suffix}")
                try:
                    self._archives[role] = tarfile.open(path, mode)
                except (OSError, tarfile.TarError) as e:
                    raise SinkOpenError(role, f"Could not open archive {path}: {e}") from e
                self.paths[role] = path
        except SinkOpenError:
            self.close()
            raise

    def _add(self, role: str, name: str, data: bytes):
        info = tarfile.TarInfo(name)
        info.size = len(data)
        info.mtime = int(time.time())
        info.mode = 0o644
        with self._lock:
            self._archives[role].addfile(info, io.BytesIO(data))

    def _write(self, spectrum: Spectrum, role: str) -> str:
        name = self.names.claim(spectrum.model, spectrum.raw_bytes())
        self._add(role, name, spectrum.to_text().encode('utf-8'))
        if self.images:
            self._add(role, name[:-len('.csv')] + '.png', nyquist_png(spectrum))
        return name

    def _write_metadata(self, role: str, metadata: DatasetMetadata):
        self._add(role, METADATA_NAME, metadata.to_json().encode('utf-8'))

    def close(self):
        with self._lock:
            for archive in self._archives.values():
                archive.close()
            self._archives = {}


def open_sink(output: Path, roles: Sequence[str], archive: bool = False,
              compress: bool = False, images: bool = False) -> SpectrumSink:
    """Create the sink for an export. Raises SinkOpenError naming the failing split."""
    if archive:
        return ArchiveSink(output, roles, compress=compress, images=images)
    return DirectorySink(output, roles, images=images)

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
