class RegistryError(Exception):
    """Base class for everything the endpoint registry can fail with"""
    http_status = 500


class InvalidIdentifier(RegistryError):
    http_status = 400


class MalformedRequestBody(RegistryError):
    http_status = 400


class IdentityMismatch(RegistryError):
    http_status = 400

    def __init__(self, path_identifier: str, body_identifier: str):
        super().__init__(
            f"identifier mismatch (resource: {path_identifier}, body: {body_identifier})"
        )
        self.path_identifier = path_identifier
        self.body_identifier = body_identifier


class EndpointNotFound(RegistryError):
    http_status = 404

    def __init__(self, identifier: str):
        super().__init__(f'no such endpoint "{identifier}"')
        self.identifier = identifier


class MalformedStoredRecord(RegistryError):
    """A stored hash is missing fields or holds unparseable numbers"""
    http_status = 500


class StoreUnavailable(RegistryError):
    """A round-trip to the key-value store failed"""
    http_status = 500

    def __init__(self, operation: str, key: str):
        super().__init__(f"{operation} {key} failed")
        self.operation = operation
        self.key = key
