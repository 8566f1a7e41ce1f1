"""Encoding, hashing and HMAC functions (``crypt`` namespace).

Strings are hashed and encoded as their UTF-8 bytes. Decoders return text
decoded as UTF-8; byte sequences that are not valid UTF-8 come back with
U+FFFD replacement characters.
"""

import base64
import binascii
import hashlib
import hmac
import html
import zlib
from typing import Any

from exql.errors import FunctionError
from exql.functions import FunctionCategory, FunctionRegistry, param
from exql.lib.conversion import expect_list, to_int, to_string, type_name
from exql.values import ValueType, type_of

registry = FunctionRegistry(FunctionCategory.CRYPT)

HASH_ALGORITHMS = {
    "md5": hashlib.md5,
    "sha1": hashlib.sha1,
    "sha224": hashlib.sha224,
    "sha256": hashlib.sha256,
    "sha384": hashlib.sha384,
    "sha512": hashlib.sha512,
}

VERIFY_ALGORITHMS = ("md5", "sha1", "sha256", "sha512")


def _bytes(name: str, value: Any) -> bytes:
    return to_string(name, value).encode("utf-8")


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


# -----------------------------------------------------------------------------
# Base encodings
# -----------------------------------------------------------------------------


def _codec(name: str, description: str, encode: Any, decode: Any, label: str) -> None:
    """Register an encoder ``<name>Encode`` and its decoder ``<name>Decode``."""
    encoder, decoder = f"{name}Encode", f"{name}Decode"

    def encode_value(value: Any) -> str:
        return encode(_bytes(encoder, value)).decode("ascii")

    def decode_value(value: Any) -> str:
        text = to_string(decoder, value)
        try:
            return _text(decode(text))
        except (binascii.Error, ValueError) as e:
            raise FunctionError(f"{decoder}: invalid {label} string: {e}") from e

    registry.function(encoder, f"Encodes a string as {description}", [param("value", "string")], "string")(
        encode_value
    )
    registry.function(decoder, f"Decodes {description} text", [param("value", "string")], "string")(
        decode_value
    )


_codec("base64", "standard base64", base64.b64encode, lambda s: base64.b64decode(s, validate=True), "base64")
_codec(
    "base64Url",
    "URL-safe base64",
    base64.urlsafe_b64encode,
    lambda s: base64.b64decode(s, altchars=b"-_", validate=True),
    "base64url",
)
_codec("hex", "lowercase hexadecimal", binascii.hexlify, bytes.fromhex, "hex")
_codec("base32", "base32 (RFC 4648)", base64.b32encode, lambda s: base64.b32decode(s, casefold=False), "base32")


# -----------------------------------------------------------------------------
# Hashing
# -----------------------------------------------------------------------------


def _hasher(name: str, algorithm: str) -> None:
    def digest(value: Any) -> str:
        return HASH_ALGORITHMS[algorithm](_bytes(name, value)).hexdigest()

    registry.function(name, f"Hex {algorithm.upper()} digest", [param("value", "string")], "string")(digest)


def _hmac(name: str, algorithm: str) -> None:
    def sign(key: Any, message: Any) -> str:
        return hmac.new(_bytes(name, key), _bytes(name, message), HASH_ALGORITHMS[algorithm]).hexdigest()

    registry.function(
        name,
        f"Hex HMAC-{algorithm.upper()} of message under key",
        [param("key", "string"), param("message", "string")],
        "string",
        examples=[f"crypt.{name}(secret, body) == signature"],
    )(sign)


for _name, _algorithm in (
    ("hashMd5", "md5"),
    ("hashSha1", "sha1"),
    ("hashSha224", "sha224"),
    ("hashSha256", "sha256"),
    ("hashSha384", "sha384"),
    ("hashSha512", "sha512"),
):
    _hasher(_name, _algorithm)

for _name, _algorithm in (
    ("hmacMd5", "md5"),
    ("hmacSha1", "sha1"),
    ("hmacSha256", "sha256"),
    ("hmacSha512", "sha512"),
):
    _hmac(_name, _algorithm)


@registry.function("hashCrc32", "CRC-32 (IEEE) checksum as a number", [param("value", "string")], "number")
def _hash_crc32(value: Any) -> float:
    return float(zlib.crc32(_bytes("hashCrc32", value)))


@registry.function(
    "hashVerify",
    "True when the hex digest of input under algorithm (md5, sha1, sha256, sha512) matches",
    [param("input", "string"), param("hash", "string"), param("algorithm", "string")],
    "boolean",
    examples=["crypt.hashVerify(password, stored, 'sha256')"],
)
def _hash_verify(value: Any, expected: Any, algorithm: Any) -> bool:
    algorithm = to_string("hashVerify", algorithm).lower()
    if algorithm not in VERIFY_ALGORITHMS:
        raise FunctionError(f"hashVerify: unsupported algorithm '{algorithm}'")
    actual = HASH_ALGORITHMS[algorithm](_bytes("hashVerify", value)).hexdigest()
    return hmac.compare_digest(actual, to_string("hashVerify", expected).lower())


# -----------------------------------------------------------------------------
# Number bases and character codes
# -----------------------------------------------------------------------------


@registry.function(
    "toBinary",
    "Binary form of a number, or space-separated 8-bit groups of a string's bytes",
    [param("value", "any")],
    "string",
    examples=["crypt.toBinary(5) == '101'", "crypt.toBinary('A') == '01000001'"],
)
def _to_binary(value: Any) -> str:
    value_type = type_of(value)
    if value_type is ValueType.NUMBER:
        return format(to_int("toBinary", value), "b")
    if value_type is ValueType.STRING:
        return " ".join(f"{byte:08b}" for byte in value.encode("utf-8"))
    raise FunctionError(f"toBinary: unsupported type {value_type.value}")


@registry.function(
    "fromBinary",
    "Number from binary digits; space-separated groups decode to a string",
    [param("value", "string")],
    "any",
)
def _from_binary(value: Any) -> Any:
    text = to_string("fromBinary", value)
    if " " in text:
        data = bytearray()
        for part in text.split(" "):
            try:
                data.append(int(part, 2) & 0xFF)
            except ValueError as e:
                raise FunctionError(f"fromBinary: invalid binary part '{part}'") from e
        return _text(bytes(data))
    try:
        return float(int(text, 2))
    except ValueError as e:
        raise FunctionError(f"fromBinary: invalid binary string '{text}'") from e


@registry.function("toOctal", "Octal form of a number", [param("value", "number")], "string")
def _to_octal(value: Any) -> str:
    if type_of(value) is not ValueType.NUMBER:
        raise FunctionError(f"toOctal: unsupported type {type_name(value)}")
    return format(to_int("toOctal", value), "o")


@registry.function("fromOctal", "Number from octal digits", [param("value", "string")], "number")
def _from_octal(value: Any) -> float:
    text = to_string("fromOctal", value)
    try:
        return float(int(text, 8))
    except ValueError as e:
        raise FunctionError(f"fromOctal: invalid octal string '{text}'") from e


@registry.function("toAscii", "List of the string's UTF-8 byte values", [param("value", "string")], "list")
def _to_ascii(value: Any) -> list:
    return [float(byte) for byte in _bytes("toAscii", value)]


@registry.function("fromAscii", "String from a list of byte values (0-255)", [param("codes", "list")], "string")
def _from_ascii(codes: Any) -> str:
    data = bytearray()
    for i, code in enumerate(expect_list("fromAscii", codes)):
        number = to_int("fromAscii", code)
        if not 0 <= number <= 255:
            raise FunctionError(f"fromAscii: element {i} value {number} out of ASCII range (0-255)")
        data.append(number)
    return _text(bytes(data))


# -----------------------------------------------------------------------------
# HTML
# -----------------------------------------------------------------------------


@registry.function("htmlEscape", "Escapes <, >, &, ' and \"", [param("value", "string")], "string")
def _html_escape(value: Any) -> str:
    return html.escape(to_string("htmlEscape", value), quote=True)


@registry.function("htmlUnescape", "Resolves HTML character references", [param("value", "string")], "string")
def _html_unescape(value: Any) -> str:
    return html.unescape(to_string("htmlUnescape", value))
