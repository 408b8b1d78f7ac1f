# ============================================================================
# LAMBDA INVOKER
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Infrastructure - AWS Lambda client and invoker
# PURPOSE: Build the Lambda client once from immutable config and invoke
#          functions synchronously
# CREATED: 19 OCT 2026
# ============================================================================
"""
Lambda Invoker

Three pieces:

    LambdaConfig          region / endpoint / credential material, read once
    build_lambda_client() boto3 client from a LambdaConfig
    LambdaInvoker         invoke(target_name, payload) -> InvokeResponse

Credentials:
    If both access key and secret key are non-blank they are used as static
    credentials. Otherwise boto3 resolves credentials from its default chain
    (env vars, shared config, instance/container role).

Error categorization (botocore -> InvocationError):
    Retryable:  TooManyRequestsException, ServiceException, throttling,
                connection and read timeouts
    Permanent:  ResourceNotFoundException, AccessDenied*, invalid request,
                missing credentials

The invoker never retries on its own; botocore attempts are capped by
LambdaConfig.max_attempts (1 by default).
"""

import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from core.contracts import FunctionErrorKind
from core.errors import InvocationError
from core.logging import ComponentType, get_logger
from core.models.delivery import InvokeResponse

logger = get_logger(__name__, ComponentType.INVOKER)

DEFAULT_REGION = "us-east-1"

_REGION_PATTERN = re.compile(r"^[a-z]{2,4}(-[a-z]+)+-\d+$")

RETRYABLE_ERROR_CODES = frozenset({
    "TooManyRequestsException",
    "ThrottlingException",
    "ServiceException",
    "EC2ThrottledException",
    "ResourceNotReadyException",
    "ResourceConflictException",
})

_RETRYABLE_BOTOCORE_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True)
class LambdaConfig:
    """Immutable region and credential material for the Lambda client."""

    region: str = DEFAULT_REGION
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    qualifier: Optional[str] = None

    # Client behaviour
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    max_attempts: int = 1

    def __post_init__(self):
        if not _REGION_PATTERN.match(self.region or ""):
            raise ValueError(f"Invalid AWS region: {self.region!r}")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.read_timeout <= 0 or self.connect_timeout <= 0:
            raise ValueError("timeouts must be positive")

    @property
    def has_static_credentials(self) -> bool:
        """Static credentials are used only when both keys are non-blank."""
        return bool(
            self.access_key and self.access_key.strip()
            and self.secret_key and self.secret_key.strip()
        )

    @classmethod
    def from_env(cls) -> "LambdaConfig":
        """
        Load configuration from environment variables.

            LAMBDA_REGION: AWS region (default us-east-1)
            LAMBDA_ACCESS_KEY / LAMBDA_SECRET_KEY: static credentials (optional)
            LAMBDA_ENDPOINT_URL: alternate endpoint, e.g. localstack (optional)
            LAMBDA_QUALIFIER: version or alias to invoke (optional)
            LAMBDA_CONNECT_TIMEOUT / LAMBDA_READ_TIMEOUT: seconds
            LAMBDA_MAX_ATTEMPTS: botocore attempts per invocation (default 1)
        """
        return cls(
            region=os.environ.get("LAMBDA_REGION", DEFAULT_REGION),
            access_key=os.environ.get("LAMBDA_ACCESS_KEY") or None,
            secret_key=os.environ.get("LAMBDA_SECRET_KEY") or None,
            endpoint_url=os.environ.get("LAMBDA_ENDPOINT_URL") or None,
            qualifier=os.environ.get("LAMBDA_QUALIFIER") or None,
            connect_timeout=float(os.environ.get("LAMBDA_CONNECT_TIMEOUT", "10")),
            read_timeout=float(os.environ.get("LAMBDA_READ_TIMEOUT", "60")),
            max_attempts=int(os.environ.get("LAMBDA_MAX_ATTEMPTS", "1")),
        )


def build_lambda_client(config: LambdaConfig) -> Any:
    """Create a boto3 Lambda client from the given config."""
    client_config = Config(
        region_name=config.region,
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
        retries={"max_attempts": config.max_attempts, "mode": "standard"},
    )

    kwargs = {
        "region_name": config.region,
        "config": client_config,
    }
    if config.endpoint_url:
        kwargs["endpoint_url"] = config.endpoint_url

    if config.has_static_credentials:
        logger.debug("Using static AWS credentials")
        kwargs["aws_access_key_id"] = config.access_key.strip()
        kwargs["aws_secret_access_key"] = config.secret_key.strip()
    else:
        logger.debug("Using default AWS credential chain")

    logger.info(f"Lambda client built (region={config.region})")
    return boto3.client("lambda", **kwargs)


# ============================================================================
# INVOKERS
# ============================================================================

class Invoker(ABC):
    """Synchronous remote function invoker."""

    @abstractmethod
    def invoke(self, target_name: str, payload: bytes) -> InvokeResponse:
        """
        Invoke the named function with the payload.

        Returns:
            InvokeResponse for a completed call

        Raises:
            InvocationError: the call itself could not complete
        """
        ...


class LambdaInvoker(Invoker):
    """Invokes AWS Lambda functions with RequestResponse semantics."""

    def __init__(self, client: Any, qualifier: Optional[str] = None):
        """
        Args:
            client: boto3 Lambda client (see build_lambda_client)
            qualifier: Optional version or alias for every invocation
        """
        self._client = client
        self.qualifier = qualifier

    @classmethod
    def from_config(cls, config: LambdaConfig) -> "LambdaInvoker":
        return cls(build_lambda_client(config), qualifier=config.qualifier)

    def invoke(self, target_name: str, payload: bytes) -> InvokeResponse:
        request = {
            "FunctionName": target_name,
            "InvocationType": "RequestResponse",
            "Payload": payload,
        }
        if self.qualifier:
            request["Qualifier"] = self.qualifier

        try:
            result = self._client.invoke(**request)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            retryable = code in RETRYABLE_ERROR_CODES
            logger.warning(
                f"Lambda invoke failed for {target_name}: {code} "
                f"({'transient' if retryable else 'permanent'})"
            )
            raise InvocationError(
                f"Lambda invoke failed for {target_name}: {code}: {e}",
                error_code=code,
                retryable=retryable,
            ) from e
        except BotoCoreError as e:
            retryable = isinstance(e, _RETRYABLE_BOTOCORE_ERRORS)
            logger.warning(f"Lambda transport error for {target_name}: {type(e).__name__}")
            raise InvocationError(
                f"Lambda transport error for {target_name}: {e}",
                error_code=type(e).__name__,
                retryable=retryable,
            ) from e

        return self._to_response(result)

    @staticmethod
    def _to_response(result: dict) -> InvokeResponse:
        try:
            status_code = int(result["StatusCode"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvocationError(f"Malformed Lambda response: {e}", error_code="MalformedResponse") from e

        body = result.get("Payload")
        if body is not None and hasattr(body, "read"):
            try:
                body = body.read()
            except BotoCoreError as e:
                raise InvocationError(
                    f"Failed reading Lambda response payload: {e}",
                    error_code=type(e).__name__,
                    retryable=True,
                ) from e

        return InvokeResponse(
            status_code=status_code,
            function_error=FunctionErrorKind.from_header(result.get("FunctionError")),
            payload=body or None,
            executed_version=result.get("ExecutedVersion"),
        )


__all__ = [
    "DEFAULT_REGION",
    "LambdaConfig",
    "build_lambda_client",
    "Invoker",
    "LambdaInvoker",
]
