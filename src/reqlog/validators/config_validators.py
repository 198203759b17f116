def to_uppercase(value: str | None) -> str | None:
    """
    Converts a string to uppercase if it's not None.
    """
    if value is None:
        return None
    return value.strip().upper()


def to_lowercase(value: str | None) -> str | None:
    """
    Converts a string to lowercase if it's not None.
    """
    if value is None:
        return None
    return value.strip().lower()


def split_csv(value: object) -> object:
    """
    Accept "a, b,c" from the environment as ["a", "b", "c"].

    Lists (and JSON arrays already decoded by pydantic-settings) pass through.
    """
    if isinstance(value, str):
        return [part.strip().lower() for part in value.split(",") if part.strip()]
    return value
