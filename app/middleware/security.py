import re


class Security:
    """Request identity validator.

    Behavior:
    - The caller is identified by the `x-user-id` header; there is no real auth.
    - Valid user ids are 1 to 50 characters of letters, digits, `_` or `-`.
      Examples: `user1`, `john_doe`, `a-b-c`
    - Anything else (spaces, dots, glob characters, empty) is rejected, so an id
      can be embedded in a cache key without ambiguity.
    - Content ids are opaque but bounded to 50 characters.
    """

    USER_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,50}$")
    MAX_CONTENT_ID_LENGTH = 50

    def is_valid_user_id(self, user_id: str) -> bool:
        if not user_id or not isinstance(user_id, str):
            return False
        return self.USER_ID_PATTERN.fullmatch(user_id) is not None

    def is_valid_content_id(self, content_id: str) -> bool:
        if not content_id or not isinstance(content_id, str):
            return False
        return len(content_id) <= self.MAX_CONTENT_ID_LENGTH
