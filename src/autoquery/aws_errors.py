from __future__ import annotations

from botocore.exceptions import ClientError

from .errors import AwsError, NotFoundError, ThrottlingError, ValidationError

_THROTTLING_CODES = frozenset(
    {
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "RequestLimitExceeded",
    }
)


def map_client_error(err: ClientError) -> Exception:
    code = str(err.response.get("Error", {}).get("Code", ""))
    message = str(err.response.get("Error", {}).get("Message", ""))

    if code == "ValidationException":
        return ValidationError(message)
    if code == "ResourceNotFoundException":
        return NotFoundError(message or "resource not found")
    if code in _THROTTLING_CODES:
        return ThrottlingError(code=code, message=message or str(err))

    return AwsError(code=code or "UnknownError", message=message or str(err))
