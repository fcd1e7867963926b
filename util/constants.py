class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    JOBS = V1 + "/jobs"
    JOB_STATUS = JOBS + "/{job_id}"
    DOWNLOAD = V1 + "/download/{filename}"
    QUEUE = V1 + "/queue"


class JobMessages:
    PENDING = "Waiting in queue..."
    PROCESSING = "Downloading..."
    COMPLETED = "Download finished!"
    FETCH_FAILED = "Download failed. Check the link."
    FETCH_TIMEOUT = "Download timed out."
    ARTIFACT_MISSING = "artifact missing after success"
    INTERNAL_ERROR = "Internal error while processing the job."


# Leftovers the fetch tool may write next to the final file.
PARTIAL_SUFFIXES = (".part", ".ytdl", ".tmp")

DEFAULT_CONTENT_TYPE = "application/octet-stream"
