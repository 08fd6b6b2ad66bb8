"""
Zip archives of serialized records for download and cold storage.

An archive holds the YAML files laid out as in a source directory
(``<type>/<bundle>/<uuid>.yml``), whatever option plugins add next to them,
and a ``_pack_meta.json`` with the SHA256 of every member. Archives can be
encrypted with AES-256-GCM.
"""

import hashlib
import json
import logging
import os
import tempfile
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .core.exportable import Exportable
from .options.registry import MetaOptionRegistry
from .sources.source import Source

logger = logging.getLogger(__name__)

PACK_META_NAME = "_pack_meta.json"
ENCRYPTION_KEY_ENV_VAR = "RECORDSYNC_ENCRYPTION_KEY"


def _aes_key(key: bytes) -> bytes:
    # AES-256 needs exactly 32 bytes
    if len(key) != 32:
        return hashlib.sha256(key).digest()
    return key


def _load_aesgcm():
    try:
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM
    except ImportError:
        raise ImportError(
            "cryptography library is required for encryption. "
            "Install with: pip install cryptography"
        )
    return AESGCM


class ArchiveWriter:
    """
    Packs exportables, or the whole content of a source, into a zip archive.

    Supports:
    - ZIP compression (always available)
    - Optional encryption (when cryptography library is available)
    """

    def __init__(
        self,
        options: Optional[MetaOptionRegistry] = None,
        encrypt: bool = False,
        encryption_key: Optional[bytes] = None,
    ):
        """
        Initialize the writer.

        Args:
            options: Option plugins given a chance to add files per exportable
            encrypt: Whether to encrypt the archive
            encryption_key: Encryption key (required if encrypt=True)
        """
        self.options = options or MetaOptionRegistry()
        self.encrypt = encrypt
        self.encryption_key = encryption_key

        if self.encrypt and not self.encryption_key:
            raise ValueError("Encryption key is required for encryption")

    def write_exportables(
        self,
        exportables: Iterable[Exportable],
        output_path: Path,
        source_id: str = "",
    ) -> Path:
        """
        Pack exportables as YAML, running every applicable option's
        ``pre_export_download`` hook after each record is added.

        Returns:
            Path to the created archive
        """
        output_path = self._prepare_output(output_path)
        logger.info(f"Packing exportables to {output_path}")

        with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for exportable in exportables:
                record = exportable.record
                arcname = f"{record.record_type}/{record.bundle}/{exportable.filename}"
                zf.writestr(arcname, exportable.to_yaml())
                logger.debug(f"  Added: {arcname}")
                for option in self.options.applicable(record):
                    option.pre_export_download(zf, exportable)

        return self._finish(output_path, source_id)

    def write_source(self, source: Source, output_path: Path) -> Path:
        """
        Pack every file under a source directory.

        Raises:
            FileNotFoundError: If the source directory does not exist
        """
        directory = source.directory_processed()
        if not directory.is_dir():
            raise FileNotFoundError(f"Source directory not found: {directory}")

        output_path = self._prepare_output(output_path)
        logger.info(f"Packing source {source.id} to {output_path}")

        with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for file_path in sorted(directory.rglob("*")):
                if file_path.is_file():
                    arcname = file_path.relative_to(directory).as_posix()
                    zf.write(file_path, arcname)
                    logger.debug(f"  Added: {arcname}")

        return self._finish(output_path, source.id)

    def _prepare_output(self, output_path: Path) -> Path:
        output_path = Path(output_path)
        if output_path.suffix != ".zip":
            output_path = output_path.with_suffix(".zip")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        return output_path

    def _finish(self, output_path: Path, source_id: str) -> Path:
        # Members are hashed from the closed archive so hook-added files count too
        with zipfile.ZipFile(output_path, "r") as zf:
            hashes = {
                name: hashlib.sha256(zf.read(name)).hexdigest()
                for name in zf.namelist()
                if not name.endswith("/")
            }

        pack_meta = {
            "packed_at": datetime.now(timezone.utc).isoformat(),
            "source_id": source_id,
            "encrypted": self.encrypt,
            "files": hashes,
        }
        with zipfile.ZipFile(output_path, "a", zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(PACK_META_NAME, json.dumps(pack_meta, indent=2, sort_keys=True))

        logger.info(f"Created archive: {output_path} ({output_path.stat().st_size} bytes, {len(hashes)} files)")

        if self.encrypt:
            output_path = self._encrypt_archive(output_path)
        return output_path

    def _encrypt_archive(self, archive_path: Path) -> Path:
        """Encrypt an archive using AES-256-GCM (nonce + ciphertext)."""
        aesgcm = _load_aesgcm()(_aes_key(self.encryption_key))

        with open(archive_path, "rb") as f:
            data = f.read()

        # 12 byte nonce for GCM
        nonce = os.urandom(12)
        encrypted = aesgcm.encrypt(nonce, data, None)

        encrypted_path = archive_path.with_suffix(".zip.enc")
        with open(encrypted_path, "wb") as f:
            f.write(nonce + encrypted)

        archive_path.unlink()

        logger.info(f"Encrypted archive: {encrypted_path}")
        return encrypted_path


class ArchiveReader:
    """
    Unpacks an archive written by ArchiveWriter, decrypting it if needed.
    """

    def __init__(self, archive_path: Path, decryption_key: Optional[bytes] = None):
        self.archive_path = Path(archive_path)
        self.decryption_key = decryption_key

        if not self.archive_path.exists():
            raise FileNotFoundError(f"Archive not found: {self.archive_path}")

        self.is_encrypted = self.archive_path.suffix == ".enc"

    def read_meta(self) -> Dict:
        """The archive's pack metadata, or an empty dict if it has none."""
        archive = self._plain_archive()
        try:
            with zipfile.ZipFile(archive, "r") as zf:
                if PACK_META_NAME not in zf.namelist():
                    return {}
                return json.loads(zf.read(PACK_META_NAME).decode("utf-8"))
        finally:
            self._cleanup(archive)

    def verify(self) -> List[str]:
        """Members whose content does not match the recorded hash, or is missing."""
        archive = self._plain_archive()
        try:
            return self._mismatched(archive)
        finally:
            self._cleanup(archive)

    def unpack(self, output_dir: Path) -> Path:
        """
        Extract the archive, without its pack metadata, into a directory
        laid out like a source directory.

        Returns:
            The output directory
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        archive = self._plain_archive()
        try:
            for name in self._mismatched(archive):
                logger.warning(f"Content hash mismatch in archive member: {name}")

            logger.info(f"Unpacking {self.archive_path} to {output_dir}")
            with zipfile.ZipFile(archive, "r") as zf:
                members = [name for name in zf.namelist() if name != PACK_META_NAME]
                zf.extractall(output_dir, members=members)
        finally:
            self._cleanup(archive)

        return output_dir

    def _mismatched(self, archive: Path) -> List[str]:
        with zipfile.ZipFile(archive, "r") as zf:
            if PACK_META_NAME not in zf.namelist():
                return []
            meta = json.loads(zf.read(PACK_META_NAME).decode("utf-8"))
            return [
                name
                for name, expected in sorted((meta.get("files") or {}).items())
                if name not in zf.namelist() or hashlib.sha256(zf.read(name)).hexdigest() != expected
            ]

    def _plain_archive(self) -> Path:
        if self.is_encrypted:
            return self._decrypt_archive()
        return self.archive_path

    def _cleanup(self, archive: Path) -> None:
        if self.is_encrypted and archive != self.archive_path:
            archive.unlink()

    def _decrypt_archive(self) -> Path:
        """Decrypt to a temporary zip file and return its path."""
        if not self.decryption_key:
            raise ValueError("Decryption key is required")

        aesgcm = _load_aesgcm()(_aes_key(self.decryption_key))

        with open(self.archive_path, "rb") as f:
            data = f.read()

        nonce = data[:12]
        decrypted = aesgcm.decrypt(nonce, data[12:], None)

        fd, temp_path = tempfile.mkstemp(suffix=".zip")
        os.close(fd)
        temp_path = Path(temp_path)
        with open(temp_path, "wb") as f:
            f.write(decrypted)

        logger.debug(f"Decrypted archive to: {temp_path}")
        return temp_path


def get_encryption_key(
    key_source: str = "env",
    key_env_var: str = ENCRYPTION_KEY_ENV_VAR,
    key_file_path: Optional[str] = None,
    prompt: bool = False,
) -> Optional[bytes]:
    """
    Get encryption key from configured source.

    Args:
        key_source: Source type ('env', 'file', 'prompt')
        key_env_var: Environment variable name
        key_file_path: Path to key file
        prompt: Whether to prompt interactively

    Returns:
        Encryption key as bytes, or None if not available
    """
    if key_source == "env":
        key_str = os.environ.get(key_env_var)
        if key_str:
            return key_str.encode("utf-8")

    elif key_source == "file" and key_file_path:
        key_path = Path(key_file_path)
        if key_path.exists():
            return key_path.read_bytes().strip()

    elif key_source == "prompt" and prompt:
        import getpass
        key_str = getpass.getpass("Enter encryption key: ")
        if key_str:
            return key_str.encode("utf-8")

    return None
