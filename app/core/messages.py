"""User-facing strings shared by the service layer and the API."""

# validation
CONTENT_ID_TOO_LONG = "contentId too long"
PAGE_MIN = "page must be at least 1"
INVALID_CURSOR_FORMAT = "Invalid cursor format"

# auth
UNAUTHORIZED = "Unauthorized"
MISSING_USER_ID_HEADER = "Missing or invalid x-user-id header"
INVALID_USER_ID_FORMAT = "Invalid user ID format"

# resources
RESOURCE_NOT_FOUND = "Resource not found"
RESOURCE_ALREADY_EXISTS = "Resource already exists"
BAD_REQUEST = "Bad request"
ITEM_ALREADY_IN_LIST = "Item already exists in list"
ITEM_NOT_IN_LIST = "Item not in list"
MOVIE_NOT_FOUND = "Movie not found"
TV_SHOW_NOT_FOUND = "TV Show not found"

# success
ITEM_REMOVED = "Item removed from list"
