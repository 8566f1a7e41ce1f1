"""Tests for the crypt library."""

import pytest

from exql import DefaultContext, FunctionError, eval_expression, with_builtin_library


def run(source, **variables):
    ctx = DefaultContext(with_builtin_library(), variables=variables)
    return eval_expression(source, ctx)


FOX = "The quick brown fox jumps over the lazy dog"


# =============================================================================
# Encoding Tests
# =============================================================================


class TestEncodings:
    def test_base64(self):
        assert run("crypt.base64Encode('hello')") == "aGVsbG8="
        assert run("crypt.base64Decode('aGVsbG8=')") == "hello"

    def test_base64_url(self):
        assert run("crypt.base64Encode('?>>')") == "Pz4+"
        assert run("crypt.base64UrlEncode('?>>')") == "Pz4-"
        assert run("crypt.base64UrlDecode('Pz4-')") == "?>>"

    def test_base64_invalid(self):
        with pytest.raises(FunctionError, match="base64Decode: invalid base64 string"):
            run("crypt.base64Decode('!!!')")

    def test_base64_decode_replaces_invalid_utf8(self):
        assert run("crypt.base64Decode('/w==')") == "\ufffd"

    def test_hex(self):
        assert run("crypt.hexEncode('hi')") == "6869"
        assert run("crypt.hexDecode('6869')") == "hi"

    def test_hex_invalid(self):
        with pytest.raises(FunctionError, match="hexDecode: invalid hex string"):
            run("crypt.hexDecode('zz')")

    def test_base32(self):
        assert run("crypt.base32Encode('hi')") == "NBUQ===="
        assert run("crypt.base32Decode('NBUQ====')") == "hi"

    def test_unicode_round_trip(self):
        assert run("crypt.base64Decode(crypt.base64Encode('héllo ✓'))") == "héllo ✓"


# =============================================================================
# Hashing Tests
# =============================================================================


class TestHashing:
    def test_digests(self):
        assert run("crypt.hashMd5('')") == "d41d8cd98f00b204e9800998ecf8427e"
        assert run("crypt.hashSha1('abc')") == "a9993e364706816aba3e25717850c26c9cd0d89d"
        assert run("crypt.hashSha256('')") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_digest_lengths(self):
        assert len(run("crypt.hashSha224('x')")) == 56
        assert len(run("crypt.hashSha384('x')")) == 96
        assert len(run("crypt.hashSha512('x')")) == 128

    def test_hmac(self):
        assert run("crypt.hmacSha256('key', msg)", msg=FOX) == (
            "f7bc83f430538424b13298e6aa6fb143ef4d59a14946175997479dbc2d1a3cd8"
        )
        assert run("crypt.hmacMd5('key', msg)", msg=FOX) == "80070713463e7749b90c2dc24911e275"

    def test_hmac_lengths(self):
        assert len(run("crypt.hmacSha1('k', 'm')")) == 40
        assert len(run("crypt.hmacSha512('k', 'm')")) == 128

    def test_crc32(self):
        assert run("crypt.hashCrc32('hello')") == 907060870.0

    def test_hash_verify(self):
        digest = "d41d8cd98f00b204e9800998ecf8427e"

        assert run("crypt.hashVerify('', h, 'md5')", h=digest) is True
        assert run("crypt.hashVerify('', h, 'MD5')", h=digest.upper()) is True
        assert run("crypt.hashVerify('x', h, 'md5')", h=digest) is False

    def test_hash_verify_unsupported(self):
        with pytest.raises(FunctionError, match="hashVerify: unsupported algorithm 'sha384'"):
            run("crypt.hashVerify('x', 'y', 'sha384')")


# =============================================================================
# Number Base and Character Code Tests
# =============================================================================


class TestBases:
    def test_binary(self):
        assert run("crypt.toBinary(5)") == "101"
        assert run("crypt.toBinary('A')") == "01000001"
        assert run("crypt.fromBinary('101')") == 5.0
        assert run("crypt.fromBinary('01001000 01101001')") == "Hi"

    def test_binary_unsupported(self):
        with pytest.raises(FunctionError, match="toBinary: unsupported type list"):
            run("crypt.toBinary([1])")

    def test_binary_invalid(self):
        with pytest.raises(FunctionError, match="fromBinary: invalid binary string '12'"):
            run("crypt.fromBinary('12')")

    def test_octal(self):
        assert run("crypt.toOctal(8)") == "10"
        assert run("crypt.fromOctal('17')") == 15.0

    def test_octal_requires_number(self):
        with pytest.raises(FunctionError, match="toOctal: unsupported type string"):
            run("crypt.toOctal('8')")

    def test_ascii(self):
        assert run("crypt.toAscii('Hi')") == [72.0, 105.0]
        assert run("crypt.fromAscii([72, 105])") == "Hi"

    def test_ascii_out_of_range(self):
        with pytest.raises(FunctionError, match=r"fromAscii: element 1 value 300 out of ASCII range \(0-255\)"):
            run("crypt.fromAscii([72, 300])")


# =============================================================================
# HTML Tests
# =============================================================================


class TestHtml:
    def test_escape(self):
        result = run("crypt.htmlEscape(s)", s="<a href='x'>&\"</a>")
        assert result == "&lt;a href=&#x27;x&#x27;&gt;&amp;&quot;&lt;/a&gt;"

    def test_unescape(self):
        assert run("crypt.htmlUnescape('&lt;b&gt; &amp; &#39;')") == "<b> & '"
