import logging

logger = logging.getLogger("multipart_upload_service")
