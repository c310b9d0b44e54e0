def build_url(bucket: str, key: str) -> str:
    return f"s3://{bucket}/{key.lstrip('/')}"
