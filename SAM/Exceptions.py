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

class SAMException(IOError):
    """
    Base class for all errors raised by the SAM client. Every
    subclass carries the structured context of the failure as
    attributes, so callers never need to re-parse protocol text.
    """

class BadAddressEncoding(SAMException):
    """A base64 or base32 address string could not be decoded"""
    def __init__(self, address, reason=None):
        self.address = address
        self.reason = reason
        description = "Bad address encoding: "+repr(address)
        if reason != None:
            description += " ("+str(reason)+")"
        super().__init__(description)

class ProtocolError(SAMException):
    """
    A reply did not parse, or violated the protocol grammar. When
    the router answered with a well-formed error that has no more
    specific exception, ``result`` and ``message`` hold its
    ``RESULT`` code and ``MESSAGE`` text.
    """
    def __init__(self, reason, line=None, result=None, message=None):
        self.reason = reason
        self.line = line
        self.result = result
        self.message = message
        super().__init__(reason)

class VersionMismatch(SAMException):
    """The router rejected the requested protocol version bounds"""
    def __init__(self, min_version, max_version, message=None, result=None):
        self.min_version = min_version
        self.max_version = max_version
        self.message = message
        self.result = result
        description = "No SAM version between "+str(min_version)+" and "+str(max_version)+" was accepted"
        if message != None:
            description += ": "+str(message)
        super().__init__(description)

class SessionCreateFailed(SAMException):
    """The router refused to create a session"""
    def __init__(self, nickname, reason, result=None):
        self.nickname = nickname
        self.reason = reason
        self.result = result
        super().__init__("Could not create session "+str(nickname)+": "+str(reason))

class StyleMismatch(SAMException):
    """An operation was invoked on a session of the wrong style"""
    def __init__(self, expected, actual):
        self.expected = tuple(expected)
        self.actual = actual
        super().__init__("Operation requires a "+"/".join(self.expected)+" session, but session style is "+str(actual))

class PeerUnreachable(SAMException):
    """The router could not open a stream to the peer"""
    def __init__(self, peer, reason, result=None):
        self.peer = peer
        self.reason = reason
        self.result = result
        super().__init__("Could not reach "+str(peer)+": "+str(reason))

class NameNotFound(SAMException):
    """The naming service has no destination for the name"""
    def __init__(self, name, message=None):
        self.name = name
        self.message = message
        super().__init__("No destination found for "+repr(name))

class NotReady(SAMException):
    """A command was issued before the version handshake completed"""

class ConnectionClosed(SAMException):
    """The connection ended, or was closed or handed off, before a reply was read"""

class TransportError(SAMException):
    """
    The underlying byte stream failed. The original ``OSError`` is
    available as ``cause``, and is also chained to this exception.
    """
    def __init__(self, cause):
        self.cause = cause
        super().__init__("Transport failure: "+str(cause))
