"""In-memory blob store for tests and local development."""

from orgledger.services.blob.interface import BlobStore


class InMemoryBlobStore(BlobStore):
    """Keeps uploads in a dict; URLs use the memory:// scheme."""

    def __init__(self):
        self.files: dict[str, tuple[bytes, str]] = {}

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        self.files[path] = (bytes(data), content_type)
        return f"memory://{path}"
