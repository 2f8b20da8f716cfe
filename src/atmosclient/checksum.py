"""Running content checksums for Atmos wschecksum validation.

A ``Checksum`` is threaded through successive writes (or reads) of the same
object. After each update its string form is what goes into the
``x-emc-wschecksum`` header: ``ALG/offset/hexdigest``.

Callers must not share one instance between concurrent requests.
"""

import hashlib

from atmosclient.errors import ChecksumMismatch, ValidationError

SHA0 = "SHA0"
SHA1 = "SHA1"
MD5 = "MD5"

_HASHLIB_NAMES = {
    SHA1: "sha1",
    MD5: "md5",
}


class Checksum:
    """An incremental hash of object content.

    Attributes:
        algorithm: One of ``SHA1`` or ``MD5``.
        offset: Number of bytes hashed so far.
        expected_value: The server-reported checksum, set on reads.
    """

    def __init__(self, algorithm: str = SHA1) -> None:
        algorithm = algorithm.upper()
        if algorithm == SHA0:
            # hashlib exposes no SHA-0 and the algorithm is withdrawn
            raise ValidationError("SHA0 checksums are not supported")
        if algorithm not in _HASHLIB_NAMES:
            raise ValidationError(f"Unknown checksum algorithm: {algorithm}")
        self.algorithm = algorithm
        self.offset = 0
        self.expected_value: str | None = None
        self._hash = hashlib.new(_HASHLIB_NAMES[algorithm])

    def update(self, data: bytes | bytearray | memoryview) -> None:
        """Feed the next chunk of content."""
        self._hash.update(data)
        self.offset += len(data)

    def hexdigest(self) -> str:
        """Digest of everything hashed so far, without finalizing the state."""
        return self._hash.copy().hexdigest()

    def is_complete(self) -> bool:
        """Whether as many bytes were hashed as the expected value covers.

        The server always reports the checksum of the whole object, so a
        partial sequential read can only be compared once it reaches the end.
        """
        if self.expected_value is None:
            return False
        parts = self.expected_value.strip().split("/")
        if len(parts) == 3 and parts[1].isdigit():
            return int(parts[1]) == self.offset
        return True

    def verify(self) -> None:
        """Compare against ``expected_value`` once the content is complete.

        Raises:
            ChecksumMismatch: If the server value differs from the local one.
        """
        if not self.is_complete():
            return
        actual = str(self)
        if self.expected_value.strip().lower() != actual.lower():
            raise ChecksumMismatch(self.expected_value, actual)

    def __str__(self) -> str:
        return f"{self.algorithm}/{self.offset}/{self.hexdigest()}"

    def __repr__(self) -> str:
        return f"Checksum({str(self)!r})"
