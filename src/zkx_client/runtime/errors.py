"""
ZKX Error Model

This module provides the error handling framework for the ZKX client. Codec,
identity and signing helpers raise these errors at the point of malformed
input; none of them retry or suppress errors internally.
"""

from __future__ import annotations
from typing import Optional, Dict, Any
from enum import IntEnum


class ErrorCode(IntEnum):
    """ZKX client error codes."""

    # Success
    OK = 0

    # General errors (1-99)
    UNKNOWN = 1
    INTERNAL = 2
    CONFIGURATION_ERROR = 3

    # Encoding errors (100-199)
    ENCODING_ERROR = 100
    INVALID_NUMBER_FORMAT = 101
    INVALID_HEX_FORMAT = 102
    DECODE_ERROR = 103
    VALUE_TOO_LONG = 104
    VALUE_OUT_OF_RANGE = 105

    # Identity errors (200-299)
    INVALID_ADDRESS = 200
    ADDRESS_TOO_LONG = 201

    # Key/signature errors (300-399)
    INVALID_PRIVATE_KEY = 300
    INVALID_SIGNATURE = 301

    # Network errors (400-499)
    NETWORK_ERROR = 400
    RPC_ERROR = 401
    TIMEOUT = 402

    # Transaction errors (500-599)
    TRANSACTION_FAILED = 500
    DISPATCH_ERROR = 501
    INCLUSION_TIMEOUT = 502


class ZkxError(Exception):
    """
    Base class for all ZKX client errors.

    Provides structured error information: a code, a message, optional
    details and the underlying cause.
    """

    default_code = ErrorCode.UNKNOWN

    def __init__(self, message: str, code: Optional[ErrorCode] = None,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        """
        Initialize a ZKX error.

        Args:
            message: Error message
            code: Error code (defaults to the class default)
            details: Additional error details
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"[{self.code.name}] {self.message}"]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ConfigurationError(ZkxError):
    """A required setting or collaborator is missing."""

    default_code = ErrorCode.CONFIGURATION_ERROR


class EncodingError(ZkxError):
    """Numeric and string encoding/decoding errors."""

    default_code = ErrorCode.ENCODING_ERROR


class InvalidNumberFormat(EncodingError):
    """Input is not a parseable finite decimal."""

    default_code = ErrorCode.INVALID_NUMBER_FORMAT


class InvalidHexFormat(EncodingError):
    """Input is not a well-formed 0x-prefixed hex string."""

    default_code = ErrorCode.INVALID_HEX_FORMAT


class DecodeError(EncodingError):
    """Bytes are not valid UTF-8."""

    default_code = ErrorCode.DECODE_ERROR


class ValueTooLong(EncodingError):
    """Value does not fit the declared byte width."""

    default_code = ErrorCode.VALUE_TOO_LONG


class ValueOutOfRange(EncodingError):
    """Integer is outside the range of the target chain type."""

    default_code = ErrorCode.VALUE_OUT_OF_RANGE


class InvalidAddress(ZkxError):
    """Account address is not 0x-prefixed hex."""

    default_code = ErrorCode.INVALID_ADDRESS


class AddressTooLong(ZkxError):
    """Account address is longer than 32 bytes."""

    default_code = ErrorCode.ADDRESS_TOO_LONG


class InvalidPrivateKey(ZkxError):
    """Private key is not a valid scalar on the Stark curve."""

    default_code = ErrorCode.INVALID_PRIVATE_KEY


class InvalidSignature(ZkxError):
    """Signature is not an (r, s) pair of scalars."""

    default_code = ErrorCode.INVALID_SIGNATURE


class NetworkError(ZkxError):
    """Network-related errors."""

    default_code = ErrorCode.NETWORK_ERROR


class RpcError(NetworkError):
    """JSON-RPC call failed at the HTTP, JSON or RPC level."""

    default_code = ErrorCode.RPC_ERROR

    def __init__(self, message: str, rpc_code: Optional[int] = None, data: Any = None,
                 cause: Optional[Exception] = None):
        details = {}
        if rpc_code is not None:
            details["rpc_code"] = rpc_code
        if data is not None:
            details["data"] = data
        super().__init__(message, details=details, cause=cause)
        self.rpc_code = rpc_code
        self.data = data


class RequestTimeout(NetworkError):
    """An RPC request got no response in time."""

    default_code = ErrorCode.TIMEOUT


class TransactionError(ZkxError):
    """Extrinsic execution errors."""

    default_code = ErrorCode.TRANSACTION_FAILED


class DispatchError(TransactionError):
    """
    The extrinsic was included but its dispatch failed.

    ``name`` carries the runtime error name (e.g. ``DuplicateSigner``) when the
    runtime adapter could resolve it.
    """

    default_code = ErrorCode.DISPATCH_ERROR

    def __init__(self, message: str, name: Optional[str] = None, module: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        details = dict(details or {})
        if name:
            details["name"] = name
        if module:
            details["module"] = module
        super().__init__(message, details=details, cause=cause)
        self.name = name
        self.module = module


class InclusionTimeout(TransactionError):
    """The extrinsic was not included before its deadline."""

    default_code = ErrorCode.INCLUSION_TIMEOUT


__all__ = [
    "ErrorCode",
    "ZkxError",
    "ConfigurationError",
    "EncodingError",
    "InvalidNumberFormat",
    "InvalidHexFormat",
    "DecodeError",
    "ValueTooLong",
    "ValueOutOfRange",
    "InvalidAddress",
    "AddressTooLong",
    "InvalidPrivateKey",
    "InvalidSignature",
    "NetworkError",
    "RpcError",
    "RequestTimeout",
    "TransactionError",
    "DispatchError",
    "InclusionTimeout",
]
