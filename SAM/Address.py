# Reticulum License
#
# Copyright (c) 2016-2025 Mark Qvist
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# - The Software shall not be used in any kind of system which includes amongst
#   its functions the ability to purposefully do harm to human beings.
#
# - The Software shall not be used, directly or indirectly, in the creation of
#   an artificial intelligence, machine learning or language model training
#   dataset, including but not limited to any use that contributes to the
#   training or development of such a model or algorithm.
#
# - The above copyright notice and this permission notice shall be included in
#   all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

import re
import struct
from base64 import b64decode, b64encode, b32encode, b32decode
from binascii import Error as BinasciiError
from hashlib import sha256

import SAM
from .Exceptions import BadAddressEncoding

I2P_B64_CHARS = "-~"
VALID_BASE64 = re.compile(r"^([A-Za-z0-9\-~]+={0,2})?$")
VALID_BASE32 = re.compile(r"^[A-Z2-7]+$")

def i2p_b64encode(data):
    """Encode binary data with the I2P base64 alphabet"""
    return b64encode(data, altchars=I2P_B64_CHARS.encode()).decode()

def i2p_b64decode(data):
    """
    Decode a string in the I2P base64 alphabet.

    :raises: ``ValueError`` if the string contains characters outside
             the alphabet, is incorrectly padded, or has unused bits set.
    """
    if not VALID_BASE64.match(data):
        raise ValueError("Invalid characters in I2P base64 data")
    decoded = b64decode(data, altchars=I2P_B64_CHARS, validate=True)
    if i2p_b64encode(decoded) != data:
        raise ValueError("Non-canonical I2P base64 data")
    return decoded

class I2PAddress:
    """
    An endpoint in the I2P network. An address holds exactly one
    canonical string, which is either a hostname to be resolved by
    the router, or a self-certifying base32 hash-address. Full base64
    destinations are hashed into base32 form on construction.

    Addresses are immutable, and compare and hash by their canonical
    string. Use the ``from_*`` constructors rather than instantiating
    this class directly.
    """

    HOSTNAME = 0x01
    BASE32   = 0x02
    kinds    = [HOSTNAME, BASE32]

    B32_EXT  = ".b32.i2p"
    B32_LEN  = 52

    # Public destination layout, 256 byte encryption key, 128 byte
    # signing key and a certificate of at least 3 bytes
    PUBLIC_KEYS_LEN  = 384
    MIN_CERT_LEN     = 3
    MIN_BASE64_LEN   = 516

    def __init__(self, address, kind):
        if not kind in I2PAddress.kinds:
            raise ValueError("Unknown address kind "+str(kind))
        self._address = str(address)
        self._kind = kind

    @staticmethod
    def from_hostname(hostname):
        """
        :param hostname: Any hostname string, such as ``example.i2p``. Resolvability is not checked.
        :returns: An :ref:`I2PAddress` holding the hostname.
        """
        return I2PAddress(hostname, I2PAddress.HOSTNAME)

    @staticmethod
    def from_destination(data):
        """
        :param data: A binary destination.
        :returns: An :ref:`I2PAddress` holding the base32 hash-address of the destination.
        """
        desthash = sha256(data).digest()
        b32 = b32encode(desthash).decode().rstrip("=")
        return I2PAddress(b32+I2PAddress.B32_EXT, I2PAddress.BASE32)

    @staticmethod
    def from_base64(destination):
        """
        Creates an address from a full base64 destination. The
        destination is hashed, and only the resulting base32
        hash-address is retained.

        :param destination: A destination in the I2P base64 alphabet.
        :returns: An :ref:`I2PAddress` in base32 form.
        :raises: ``SAM.BadAddressEncoding`` if the destination does not decode.
        """
        try:
            data = i2p_b64decode(destination)
        except (ValueError, TypeError) as e:
            SAM.log("Base64 decoding error for "+SAM.abbreviate(repr(destination))+": "+str(e), SAM.LOG_DEBUG)
            raise BadAddressEncoding(destination, e) from e

        return I2PAddress.from_destination(data)

    @staticmethod
    def from_base32(address):
        """
        Creates an address from a base32 hash-address. The string is
        kept exactly as given, including its case.

        :param address: A string of 52 base32 characters followed by ``.b32.i2p``.
        :returns: An :ref:`I2PAddress` in base32 form.
        :raises: ``SAM.BadAddressEncoding`` if the string is not a valid base32 address.
        """
        parts = str(address).split(I2PAddress.B32_EXT)
        if len(parts) != 2:
            SAM.log("Invalid base32 encoded address: "+repr(address), SAM.LOG_DEBUG)
            raise BadAddressEncoding(address, "expected exactly one "+I2PAddress.B32_EXT+" extension")

        if len(parts[0]) != I2PAddress.B32_LEN:
            SAM.log("Invalid base32 encoded length: "+repr(address)+", expected "+str(I2PAddress.B32_LEN), SAM.LOG_DEBUG)
            raise BadAddressEncoding(address, "expected "+str(I2PAddress.B32_LEN)+" characters before "+I2PAddress.B32_EXT)

        encoded = parts[0].upper()
        if not VALID_BASE32.match(encoded):
            raise BadAddressEncoding(address, "invalid base32 characters")

        try:
            decoded = b32decode(encoded+"====")
        except BinasciiError as e:
            raise BadAddressEncoding(address, e) from e

        # The digest fills 256 of the 260 encoded bits, the rest must be zero
        if b32encode(decoded).decode().rstrip("=") != encoded:
            raise BadAddressEncoding(address, "non-zero trailing bits")

        return I2PAddress(address, I2PAddress.BASE32)

    @staticmethod
    def parse(address):
        """
        Creates an address from any of the three textual forms,
        choosing the constructor by the shape of the string.

        :param address: A hostname, base32 address or base64 destination.
        :returns: An :ref:`I2PAddress`.
        """
        if isinstance(address, I2PAddress):
            return address

        address = str(address)
        if address.endswith(I2PAddress.B32_EXT):
            return I2PAddress.from_base32(address)
        elif len(address) >= I2PAddress.MIN_BASE64_LEN and VALID_BASE64.match(address):
            return I2PAddress.from_base64(address)
        else:
            return I2PAddress.from_hostname(address)

    @staticmethod
    def public_destination(data):
        """
        Strips the private keys from a binary private destination,
        as returned by the router for transient sessions.

        :param data: A binary destination, with or without private keys appended.
        :returns: The binary public destination.
        """
        header_len = I2PAddress.PUBLIC_KEYS_LEN+I2PAddress.MIN_CERT_LEN
        if len(data) < header_len:
            return data

        cert_len = struct.unpack("!H", data[I2PAddress.PUBLIC_KEYS_LEN+1:header_len])[0]
        public_len = header_len+cert_len
        if len(data) > public_len:
            return data[:public_len]
        else:
            return data

    @property
    def kind(self):
        return self._kind

    def is_base32(self):
        return self._kind == I2PAddress.BASE32

    def is_hostname(self):
        return self._kind == I2PAddress.HOSTNAME

    def to_string(self):
        """
        :returns: The canonical string of this address.
        """
        return self._address

    def __str__(self):
        return self._address

    def __repr__(self):
        return "<I2PAddress: "+self._address+">"

    def __eq__(self, other):
        if isinstance(other, I2PAddress):
            return self._address == other._address
        return NotImplemented

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __lt__(self, other):
        if isinstance(other, I2PAddress):
            return self._address < other._address
        return NotImplemented

    def __hash__(self):
        return hash(self._address)
