# realestate/services/storage.py
import logging
import os
from functools import lru_cache
from typing import Optional

from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

from realestate.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class ImageStorage:
    """Stores uploaded images by generated name."""

    def save(self, data: bytes, name: str, content_type: Optional[str] = None) -> str:
        raise NotImplementedError

    def exists(self, name: str) -> bool:
        raise NotImplementedError

    def delete(self, name: str) -> bool:
        raise NotImplementedError

    def read(self, name: str) -> bytes:
        raise NotImplementedError


class LocalImageStorage(ImageStorage):
    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, name: str) -> str:
        return os.path.join(self.directory, name)

    def save(self, data: bytes, name: str, content_type: Optional[str] = None) -> str:
        with open(self._path(name), "wb") as f:
            f.write(data)
        return "/uploads/" + name

    def exists(self, name: str) -> bool:
        return os.path.isfile(self._path(name))

    def delete(self, name: str) -> bool:
        try:
            os.remove(self._path(name))
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(str(e)) from e
        return True

    def read(self, name: str) -> bytes:
        with open(self._path(name), "rb") as f:
            return f.read()


class AzureImageStorage(ImageStorage):
    def __init__(self, connection_string: str, container: str):
        self.container = container
        self.client = BlobServiceClient.from_connection_string(connection_string)
        try:
            self.client.create_container(container)
        except ResourceExistsError:
            pass

    def _blob(self, name: str):
        return self.client.get_blob_client(container=self.container, blob=name)

    def save(self, data: bytes, name: str, content_type: Optional[str] = None) -> str:
        blob_client = self._blob(name)
        content_settings = ContentSettings(content_type=content_type) if content_type else None
        blob_client.upload_blob(data, overwrite=True, content_settings=content_settings)
        return blob_client.url

    def exists(self, name: str) -> bool:
        return self._blob(name).exists()

    def delete(self, name: str) -> bool:
        try:
            self._blob(name).delete_blob()
        except ResourceNotFoundError:
            return False
        except AzureError as e:
            raise StorageError(str(e)) from e
        return True

    def read(self, name: str) -> bytes:
        return self._blob(name).download_blob().readall()


@lru_cache
def get_storage() -> ImageStorage:
    if settings.AZURE_STORAGE_CONNECTION_STRING and settings.AZURE_CONTAINER_NAME:
        logger.info("image storage: azure container=%s", settings.AZURE_CONTAINER_NAME)
        return AzureImageStorage(settings.AZURE_STORAGE_CONNECTION_STRING, settings.AZURE_CONTAINER_NAME)
    logger.info("image storage: local dir=%s", settings.UPLOAD_DIR)
    return LocalImageStorage(settings.UPLOAD_DIR)
