import re

# Firestore auto-generated document ids: 20 characters from [A-Za-z0-9]
POST_ID_PATTERN = re.compile(r"[A-Za-z0-9]{20}")


def is_valid_post_id(post_id: str) -> bool:
    """Check that a post id has the shape of a Firestore auto-generated id"""
    if not isinstance(post_id, str):
        return False
    return POST_ID_PATTERN.fullmatch(post_id) is not None
