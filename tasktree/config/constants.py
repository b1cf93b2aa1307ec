"""
Application constants
"""

# Task field limits (applied after trimming)
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 500
DETAILS_MAX_LENGTH = 10000

# Search
SEARCH_QUERY_MAX_LENGTH = 100

# Duplicate
COPY_SUFFIX = " (copy)"

# Identity headers injected by the auth proxy
PRINCIPAL_ID_HEADER = "x-ms-client-principal-id"
PRINCIPAL_NAME_HEADER = "x-ms-client-principal-name"
PRINCIPAL_IDP_HEADER = "x-ms-client-principal-idp"

# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "tasktree.log"
