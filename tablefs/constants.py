"""Storage constants"""

PATH_SEPARATOR = "/"

# Escape character declared in every LIKE predicate
LIKE_ESCAPE = "\\"

# Values of the `type` column
TYPE_FILE = "file"
TYPE_DIR = "dir"

DEFAULT_TABLE = "files"

DEFAULT_CHUNK_SIZE = 4096
MIMETYPE_SAMPLE_SIZE = 1024

VISIBILITY_PUBLIC = "public"
