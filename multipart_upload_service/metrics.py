import prometheus_client

PART_ATTEMPTS = prometheus_client.Counter(
    "multipart_part_attempts_total",
    "Number of part upload attempts sent to the object store.",
)
PART_RETRIES = prometheus_client.Counter(
    "multipart_part_retries_total",
    "Number of part upload attempts that failed and were retried.",
)
UPLOADS = prometheus_client.Counter(
    "multipart_uploads_total",
    "Number of multipart uploads finished by the driver, by outcome.",
    ["outcome"],
)
