"""Perceptual fingerprints for pattern photos.

A fingerprint is the 64-bit DCT perceptual hash (pHash) of an image,
rendered as 16 lowercase hex characters. Upstream has already normalized
orientation and cropped to a square, so the hash is taken over the whole
frame. Two fingerprints are compared by Hamming distance: the number of
differing bits, 0 for identical structure and 64 at most.
"""

import io
import re

import imagehash
from PIL import Image, UnidentifiedImageError

from pattern_common.error_codes import DecodeError

HASH_SIZE = 8
FINGERPRINT_BITS = HASH_SIZE * HASH_SIZE
FINGERPRINT_HEX_LEN = FINGERPRINT_BITS // 4
MIN_IMAGE_BYTES = 32

_HEX_RE = re.compile(r"^[0-9a-f]+$")


def compute_fingerprint(data: bytes, min_bytes: int = MIN_IMAGE_BYTES) -> str:
    """Return the hex pHash of an encoded image.

    Raises ``DecodeError`` when ``data`` is shorter than ``min_bytes`` or is
    not an image Pillow can decode.
    """
    if data is None or len(data) < min_bytes:
        raise DecodeError(
            "image below minimum size",
            {"size_bytes": 0 if data is None else len(data), "min_bytes": min_bytes},
        )

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            digest = imagehash.phash(img, hash_size=HASH_SIZE)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"undecodable image: {e}", {"size_bytes": len(data)}) from e

    return str(digest).zfill(FINGERPRINT_HEX_LEN)


def is_fingerprint(value: object) -> bool:
    return isinstance(value, str) and len(value) == FINGERPRINT_HEX_LEN and bool(_HEX_RE.match(value))


def hamming_distance(a: str, b: str) -> int:
    """Count of differing bits between two equal-length hex fingerprints."""
    if len(a) != len(b):
        raise ValueError(f"fingerprint length mismatch: {len(a)} != {len(b)}")
    x = int(a, 16) ^ int(b, 16)
    return x.bit_count()
