import re

from models.endpoint import IDENTIFIER_PATTERN
from services.errors import InvalidIdentifier

ENDPOINT_PATH_PATTERN = "^/endpoints/" + IDENTIFIER_PATTERN.lstrip("^")

_endpoint_path = re.compile(ENDPOINT_PATH_PATTERN)


def extract_endpoint_identifier(path: str) -> str:
    """Return the identifier segment of an /endpoints/<identifier> path"""
    match = _endpoint_path.fullmatch(path)
    if match is None:
        raise InvalidIdentifier(
            f'endpoint "{path}" does not match pattern "{ENDPOINT_PATH_PATTERN}"'
        )
    return path[len("/endpoints/"):]
