"""
Proof-of-transfer upload payload.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

import magic

from kosan.core.exceptions import UploadError

__all__ = ["ProofUpload"]

# libmagic only needs the header to recognise image formats
_SNIFF_BYTES = 2048


def _sniff_content_type(content: bytes, filename: str) -> str:
    """MIME type from the file's leading bytes; the name is not trusted"""
    try:
        return magic.from_buffer(content[:_SNIFF_BYTES], mime=True).lower()
    except magic.MagicException as e:
        raise UploadError(f"Cannot detect proof file type: {e}", filename=filename) from e


@dataclass(frozen=True)
class ProofUpload:
    """An image the tenant attaches as proof of a bank transfer"""

    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "ProofUpload":
        """Read a proof file from disk, detecting its content type from the bytes"""
        file_path = Path(path)
        try:
            content = file_path.read_bytes()
        except OSError as e:
            raise UploadError(f"Cannot read proof file: {e.strerror or e}", filename=file_path.name) from e

        return cls(
            filename=file_path.name,
            content=content,
            content_type=(content_type or _sniff_content_type(content, file_path.name)).lower(),
        )

    def validate(self, max_size: int, allowed_content_types: Iterable[str]) -> None:
        """Check the size and type limits the backend enforces."""
        if self.size == 0:
            raise UploadError("Payment proof file is empty", filename=self.filename)

        if self.size > max_size:
            raise UploadError(
                f"Payment proof is too large ({self.size} bytes, max {max_size})",
                filename=self.filename,
                details={"size": self.size, "max_size": max_size},
            )

        allowed = {item.lower() for item in allowed_content_types}
        detected = _sniff_content_type(self.content, self.filename)
        if self.content_type.lower() not in allowed or detected not in allowed:
            raise UploadError(
                "Invalid file type. Only images are allowed.",
                filename=self.filename,
                details={
                    "content_type": self.content_type,
                    "detected_content_type": detected,
                    "allowed": sorted(allowed),
                },
            )
