from abc import ABC, abstractmethod


class BaseObjectStore(ABC):
    """Contract for the certificate file store."""

    @abstractmethod
    def upload(self, key: str, data: bytes) -> str:
        """Store bytes under a new key and return the object's URL.

        Raises:
            ObjectExistsError: if the key is already taken.
            StorageError: if the write fails.
        """

    @abstractmethod
    def retrieve(self, key: str) -> bytes:
        """Read an object's bytes.

        Raises:
            ObjectNotFoundError: if nothing is stored under the key.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove an object; deleting a missing key is a no-op."""
