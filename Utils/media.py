import logging
import os
import random
import time
import uuid

import cloudinary
import cloudinary.uploader
from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from Utils.appError import InvalidRequest

logger = logging.getLogger(__name__)

TRANSFORMATION = [
    {"width": 800, "height": 600, "crop": "limit"},
    {"quality": "auto:good"},
    {"fetch_format": "auto"},
]


class CloudinaryMedia:
    """Hands uploaded images to Cloudinary and keeps only what it returns.

    Registered on ``app.extensions["media"]``; controllers look it up there
    so tests can swap in a fake.
    """

    def __init__(self, app=None):
        self.configured = False
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.folder = app.config["CLOUDINARY_FOLDER"]
        self.temp_dir = app.config["UPLOAD_TEMP_DIR"]
        self.max_size = app.config["MAX_IMAGE_SIZE"]
        self.allowed_extensions = app.config["ALLOWED_IMAGE_EXTENSIONS"]

        credentials = {
            "cloud_name": app.config.get("CLOUDINARY_CLOUD_NAME"),
            "api_key": app.config.get("CLOUDINARY_API_KEY"),
            "api_secret": app.config.get("CLOUDINARY_API_SECRET"),
        }
        missing = [name for name, value in credentials.items() if not value]
        if missing:
            logger.warning(f"Cloudinary not configured (missing {', '.join(missing)}) - image uploads will fail")
        else:
            cloudinary.config(secure=True, **credentials)
            self.configured = True
            logger.info(f"Cloudinary configured for cloud {credentials['cloud_name']}")

        app.extensions["media"] = self

    # ----------------------------
    # Validation
    # ----------------------------
    def validate(self, file_storage):
        filename = file_storage.filename or ""
        if "." not in filename:
            raise InvalidRequest("Invalid file type! Allowed: " + ", ".join(sorted(self.allowed_extensions)))
        extension = filename.rsplit(".", 1)[1].lower()
        if extension not in self.allowed_extensions:
            raise InvalidRequest("Invalid file type! Allowed: " + ", ".join(sorted(self.allowed_extensions)))

        if not (file_storage.mimetype or "").startswith("image/"):
            raise InvalidRequest("Only image files are allowed!")

        stream = file_storage.stream
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        if size > self.max_size:
            raise InvalidRequest(f"File too large! Maximum size is {self.max_size // (1024 * 1024)}MB")

        try:
            with Image.open(stream) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
            raise InvalidRequest("Uploaded file is not a readable image")
        finally:
            stream.seek(0)

    # ----------------------------
    # Upload / delete
    # ----------------------------
    def upload(self, file_storage) -> dict:
        """Validate, spool to a temp file, upload, and always remove the temp file."""
        self.validate(file_storage)
        if not self.configured:
            raise InvalidRequest("Image upload failed: media host is not configured")

        os.makedirs(self.temp_dir, exist_ok=True)
        unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        temp_path = os.path.join(
            self.temp_dir, f"food-{unique_suffix}-{secure_filename(file_storage.filename)}"
        )
        file_storage.save(temp_path)

        try:
            logger.info(f"Uploading to Cloudinary: {os.path.basename(temp_path)}")
            result = cloudinary.uploader.upload(
                temp_path,
                folder=self.folder,
                public_id=f"food_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
                transformation=TRANSFORMATION
            )
        except Exception as e:
            logger.error(f"Cloudinary upload failed: {e}")
            raise InvalidRequest(f"Image upload failed: {e}")
        finally:
            try:
                os.remove(temp_path)
            except OSError as e:
                logger.warning(f"Error deleting local file {temp_path}: {e}")

        logger.info(f"Upload successful: {result.get('secure_url')}")
        return {
            "url": result.get("secure_url"),
            "publicId": result.get("public_id"),
            "width": result.get("width"),
            "height": result.get("height"),
            "format": result.get("format"),
            "size": result.get("bytes")
        }

    def delete(self, public_id) -> bool:
        if not public_id or not self.configured:
            return False
        try:
            result = cloudinary.uploader.destroy(public_id)
        except Exception as e:
            logger.error(f"Error deleting from Cloudinary: {e}")
            return False

        if result.get("result") == "ok":
            logger.info(f"Image deleted from Cloudinary: {public_id}")
            return True
        logger.warning(f"Failed to delete image from Cloudinary: {public_id}")
        return False
