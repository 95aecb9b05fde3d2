"""
Conversions between EndpointPayload and its two external forms:

* the JSON body exchanged with HTTP clients
* the flat hash of string fields kept in the key-value store

Both decoders are all-or-nothing: a record is either complete and valid,
or decoding fails.
"""
import json
import re
from typing import Dict, List, Union

from pydantic import ValidationError

from models.endpoint import EndpointPayload
from services.errors import MalformedRequestBody, MalformedStoredRecord

KEY_PREFIX = "endpoints:"

STORE_FIELDS = ("identifier", "url", "method", "status_online", "frequency", "fail_after")

# Upper bounds of the numeric fields (16 and 8 bit unsigned)
_NUMERIC_LIMITS = {
    "status_online": 2**16 - 1,
    "fail_after": 2**8 - 1,
}

_DIGITS = re.compile(r"[0-9]+")


def endpoint_key(identifier: str) -> str:
    return f"{KEY_PREFIX}{identifier}"


def to_store_hash(endpoint: EndpointPayload) -> Dict[str, str]:
    """Flatten an endpoint into store fields, every value a string"""
    return {
        "identifier": endpoint.identifier,
        "url": endpoint.url,
        "method": endpoint.method,
        "status_online": str(endpoint.status_online),
        "frequency": endpoint.frequency,
        "fail_after": str(endpoint.fail_after),
    }


def _parse_stored_number(fields: Dict[str, str], name: str) -> int:
    raw = fields[name]
    if not _DIGITS.fullmatch(raw):
        raise MalformedStoredRecord(f"{name} not a number: {raw!r}")
    value = int(raw)
    if value > _NUMERIC_LIMITS[name]:
        raise MalformedStoredRecord(
            f"{name} out of range: {value} > {_NUMERIC_LIMITS[name]}"
        )
    return value


def from_store_hash(fields: Dict[str, str]) -> EndpointPayload:
    """Rebuild an endpoint from its stored hash.

    url, method and frequency are taken over verbatim; they were validated
    when the record was written.
    """
    missing = [name for name in STORE_FIELDS if not fields.get(name)]
    if missing:
        raise MalformedStoredRecord(f"missing fields in stored hash: {', '.join(missing)}")

    return EndpointPayload.model_construct(
        identifier=fields["identifier"],
        url=fields["url"],
        method=fields["method"],
        status_online=_parse_stored_number(fields, "status_online"),
        frequency=fields["frequency"],
        fail_after=_parse_stored_number(fields, "fail_after"),
    )


def from_json(body: Union[str, bytes]) -> EndpointPayload:
    """Decode a request body; raises MalformedRequestBody on any defect"""
    if not body:
        raise MalformedRequestBody("empty request body")
    try:
        return EndpointPayload.model_validate_json(body)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in exc.errors()
        )
        raise MalformedRequestBody(problems) from exc


def to_json(endpoint: EndpointPayload) -> str:
    return endpoint.model_dump_json()


def list_to_json(endpoints: List[EndpointPayload]) -> str:
    return json.dumps([endpoint.model_dump() for endpoint in endpoints])
