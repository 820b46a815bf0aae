"""Electron asar archive writer.

Layout, as read by Electron and ``@electron/asar``::

    [size pickle: u32 payload size (=4), u32 header pickle size]
    [header pickle: u32 payload size, u32 string length, JSON header, pad to 4]
    [file contents, concatenated in header order]

The JSON header is a directory tree. Files carry ``size``, ``offset``
(decimal string, relative to the end of the header) and ``integrity``;
symlinks that stay inside the packed tree are stored as ``link`` entries.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from electabul.errors import PackagingError

logger = logging.getLogger(__name__)

_UINT32 = struct.Struct("<I")
INTEGRITY_BLOCK_SIZE = 4 * 1024 * 1024


@dataclass
class _PendingFile:
    path: Path
    size: int


def _integrity(path: Path) -> dict[str, Any]:
    """SHA256 of the whole file plus one hash per 4 MiB block."""
    whole = hashlib.sha256()
    blocks: list[str] = []
    with path.open("rb") as f:
        while chunk := f.read(INTEGRITY_BLOCK_SIZE):
            whole.update(chunk)
            blocks.append(hashlib.sha256(chunk).hexdigest())
    if not blocks:
        blocks.append(hashlib.sha256(b"").hexdigest())
    return {
        "algorithm": "SHA256",
        "hash": whole.hexdigest(),
        "blockSize": INTEGRITY_BLOCK_SIZE,
        "blocks": blocks,
    }


def _build_node(
    directory: Path, root: Path, pending: list[_PendingFile], offset: int
) -> tuple[dict[str, Any], int]:
    """Describe *directory* recursively, queueing file contents in order."""
    files: dict[str, Any] = {}
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if entry.is_symlink():
            target = entry.resolve()
            if target.is_relative_to(root):
                files[entry.name] = {"link": target.relative_to(root).as_posix()}
                continue
            logger.debug("Following symlink leaving the archive root: %s", entry)

        if entry.is_dir():
            child, offset = _build_node(entry, root, pending, offset)
            files[entry.name] = child
            continue

        size = entry.stat().st_size
        node: dict[str, Any] = {
            "size": size,
            "offset": str(offset),
            "integrity": _integrity(entry),
        }
        if os.name != "nt" and os.access(entry, os.X_OK):
            node["executable"] = True
        files[entry.name] = node
        pending.append(_PendingFile(path=entry, size=size))
        offset += size
    return {"files": files}, offset


def _pickle_string(value: str) -> bytes:
    """Encode *value* as a Chromium pickle holding a single string."""
    encoded = value.encode("utf-8")
    padding = (4 - len(encoded) % 4) % 4
    payload = _UINT32.pack(len(encoded)) + encoded + b"\0" * padding
    return _UINT32.pack(len(payload)) + payload


def _pickle_uint32(value: int) -> bytes:
    return _UINT32.pack(4) + _UINT32.pack(value)


def package_directory(src_dir: Path, output_path: Path) -> Path:
    """Pack *src_dir* recursively into an asar archive at *output_path*.

    The archive is written beside *output_path* and moved into place once
    complete, so a failure never leaves a truncated archive behind.

    Raises:
        PackagingError: On any I/O failure or an invalid source directory.
    """
    root = src_dir.resolve()
    if not root.is_dir():
        msg = f"Cannot package {root}: not a directory"
        raise PackagingError(msg)

    pending: list[_PendingFile] = []
    try:
        header, _ = _build_node(root, root, pending, 0)
        header_pickle = _pickle_string(json.dumps(header, separators=(",", ":")))

        output_path.parent.mkdir(parents=True, exist_ok=True)
        partial = output_path.with_name(f".{output_path.name}.partial")
        try:
            with partial.open("wb") as out:
                out.write(_pickle_uint32(len(header_pickle)))
                out.write(header_pickle)
                for item in pending:
                    with item.path.open("rb") as f:
                        written = _copy_exact(f, out, item.size)
                    if written != item.size:
                        msg = f"{item.path} changed size while packaging"
                        raise PackagingError(msg)
            os.replace(partial, output_path)
        finally:
            partial.unlink(missing_ok=True)
    except OSError as e:
        msg = f"Failed to package {root} into {output_path}: {e}"
        raise PackagingError(msg) from e

    logger.info("Packed %d file(s) into %s", len(pending), output_path)
    return output_path


def _copy_exact(src: Any, dst: Any, size: int) -> int:
    copied = 0
    while copied < size:
        chunk = src.read(min(INTEGRITY_BLOCK_SIZE, size - copied))
        if not chunk:
            break
        dst.write(chunk)
        copied += len(chunk)
    return copied


def read_header(archive_path: Path) -> tuple[dict[str, Any], int]:
    """Return the archive's JSON header and the offset where file data starts."""
    with archive_path.open("rb") as f:
        size_pickle = f.read(8)
        if len(size_pickle) != 8:  # noqa: PLR2004
            msg = f"{archive_path} is not an asar archive"
            raise PackagingError(msg)
        (header_size,) = _UINT32.unpack_from(size_pickle, 4)
        header_pickle = f.read(header_size)

    (string_length,) = _UINT32.unpack_from(header_pickle, 4)
    header_json = header_pickle[8 : 8 + string_length].decode("utf-8")
    return json.loads(header_json), 8 + header_size


def read_file(archive_path: Path, inner_path: str) -> bytes:
    """Read one packed file by its ``/``-separated path inside the archive."""
    header, data_start = read_header(archive_path)
    node: dict[str, Any] = header
    for part in inner_path.strip("/").split("/"):
        try:
            node = node["files"][part]
        except KeyError as e:
            msg = f"{inner_path} not found in {archive_path}"
            raise PackagingError(msg) from e

    if "link" in node:
        return read_file(archive_path, node["link"])

    with archive_path.open("rb") as f:
        f.seek(data_start + int(node["offset"]))
        return f.read(int(node["size"]))


def count_files(header: dict[str, Any]) -> int:
    """Count regular file entries in an archive header."""
    total = 0
    for node in header.get("files", {}).values():
        if "files" in node:
            total += count_files(node)
        elif "size" in node:
            total += 1
    return total
