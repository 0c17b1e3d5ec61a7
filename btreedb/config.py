"""Engine-wide constants."""

INVALID_FRAME_ID = -1
INVALID_PAGE_ID = -1
INVALID_TXN_ID = -1
INVALID_TIMESTAMP = -1
INVALID_LSN = -1
HEADER_PAGE_ID = 0

PAGE_SIZE = 4096
"""Size of a data page in bytes."""

BUFFER_POOL_SIZE = 65536
"""Number of frames in the buffer pool."""

LOG_BUFFER_SIZE = (BUFFER_POOL_SIZE + 1) * PAGE_SIZE
"""Size of a log buffer in bytes."""

BUCKET_SIZE = 50
"""Size of an extendible hash bucket."""

LOG_FILE_NAME = "db.log"
REPLACER_TYPE = "LRU"