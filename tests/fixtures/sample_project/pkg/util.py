def slugify(text: str) -> str:
    return text.lower().replace(" ", "-")


def merge(left, right):
    """Merge two mappings.

    Args:
        left: First mapping
        extra: Removed parameter
    """
    return {**left, **right}
