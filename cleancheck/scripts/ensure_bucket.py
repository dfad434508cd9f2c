"""
Create the evidence bucket on the configured storage backend if it does
not exist yet. Run once when provisioning a new deployment:

    python -m cleancheck.scripts.ensure_bucket
"""
import logging
import sys

from cleancheck.core.config import settings
from cleancheck.infrastructure.storage import create_storage_service, StorageError

logger = logging.getLogger(__name__)


def ensure_bucket() -> bool:
    storage = create_storage_service(settings)
    created = storage.ensure_bucket()
    if created:
        logger.info(f"Bucket '{storage.bucket}' created on {settings.STORAGE_BACKEND}")
    else:
        logger.info(f"Bucket '{storage.bucket}' already exists on {settings.STORAGE_BACKEND}")
    return created


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        ensure_bucket()
    except StorageError as e:
        logger.error(f"Bucket setup failed: {e}")
        sys.exit(1)
