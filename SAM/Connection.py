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
import socket
import threading

import SAM
from .Message import Command, Reply
from .Exceptions import ProtocolError, VersionMismatch, NotReady
from .Exceptions import ConnectionClosed, TransportError

class SocketStream:
    """
    A duplex byte stream over a TCP socket. Lines are read without
    buffering beyond the line terminator, so that the stream can be
    handed over for raw payload use at any point.

    :param sock: A connected ``socket.socket``.
    """
    def __init__(self, sock):
        self.socket = sock
        # Unbuffered, so readline never consumes bytes past the newline that
        # belong to a handed off stream. This costs one recv per byte of a line.
        self.reader = sock.makefile("rb", buffering=0)

    @staticmethod
    def connect(host, port, timeout=None):
        sock = socket.create_connection((host, port), timeout=timeout)
        return SocketStream(sock)

    def read(self, size=-1):
        return self.reader.read(size)

    def readline(self, limit=-1):
        return self.reader.readline(limit)

    def write(self, data):
        self.socket.sendall(data)
        return len(data)

    def flush(self):
        pass

    def settimeout(self, timeout):
        self.socket.settimeout(timeout)

    def close(self):
        try:
            self.reader.close()
        finally:
            try:
                self.socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self.socket.close()

    def __repr__(self):
        return "<SocketStream: "+str(self.socket)+">"


class ControlConnection:
    """
    A connection to the SAM bridge of an I2P router. The connection
    owns one duplex byte stream, and performs strictly alternating
    command and reply exchanges over it. The protocol has no request
    identifiers, so every exchange holds the connection's lock from
    the moment the command is written until its reply has been read.

    The version handshake must be performed with :ref:`handshake`
    before any other command can be sent.

    :param stream: A duplex byte stream offering ``readline``, ``read``, ``write`` and ``close``.
    :param address: (optional) The ``(host, port)`` tuple the stream is connected to.
    """

    DEFAULT_HOST        = "127.0.0.1"
    DEFAULT_PORT        = 7656
    DEFAULT_MIN_VERSION = "3.1"
    DEFAULT_MAX_VERSION = "3.3"

    STATE_UNVERSIONED = 0x00
    STATE_VERSIONED   = 0x01
    STATE_HANDED_OFF  = 0xFE
    STATE_CLOSED      = 0xFF

    MAX_LINE_LENGTH   = 64*1024

    VALID_VERSION     = re.compile(r"^\d+(\.\d+)*$")

    @staticmethod
    def open(stream, address=None):
        """
        Takes ownership of an already connected stream. No handshake is performed.

        :returns: A :ref:`ControlConnection` in the unversioned state.
        """
        return ControlConnection(stream, address=address)

    @staticmethod
    def connect(host=None, port=None, timeout=None):
        """
        Opens a TCP connection to a SAM bridge. No handshake is performed.

        :param host: (optional) SAM bridge host, defaults to ``127.0.0.1``.
        :param port: (optional) SAM bridge port, defaults to ``7656``.
        :param timeout: (optional) Socket timeout in seconds, applied to all subsequent reads.
        :returns: A :ref:`ControlConnection` in the unversioned state.
        :raises: ``SAM.TransportError`` if the connection could not be opened.
        """
        host = host if host != None else ControlConnection.DEFAULT_HOST
        port = int(port) if port != None else ControlConnection.DEFAULT_PORT
        try:
            stream = SocketStream.connect(host, port, timeout=timeout)
        except OSError as e:
            SAM.log("Could not connect to SAM bridge at "+str(host)+":"+str(port)+": "+str(e), SAM.LOG_VERBOSE)
            raise TransportError(e) from e

        SAM.log("Connected to SAM bridge at "+str(host)+":"+str(port), SAM.LOG_DEBUG)
        return ControlConnection(stream, address=(host, port))

    @staticmethod
    def parse_version(version):
        return tuple(int(c) for c in str(version).split("."))

    def __init__(self, stream, address=None):
        self.stream = stream
        self.address = address
        self.state = ControlConnection.STATE_UNVERSIONED
        self.version = None
        self.min_version = None
        self.max_version = None
        self.user = None
        self.password = None
        self.lock = threading.RLock()

    @property
    def is_ready(self):
        return self.state == ControlConnection.STATE_VERSIONED

    def handshake(self, min_version=None, max_version=None, user=None, password=None):
        """
        Negotiates the protocol version with the router.

        :param min_version: (optional) Lowest acceptable version string.
        :param max_version: (optional) Highest acceptable version string.
        :param user: (optional) User name, for bridges with authentication enabled.
        :param password: (optional) Password, for bridges with authentication enabled.
        :returns: The negotiated version string.
        :raises: ``SAM.VersionMismatch`` if no acceptable version exists, ``SAM.ProtocolError`` on any other failed or malformed reply.
        """
        min_version = min_version if min_version != None else ControlConnection.DEFAULT_MIN_VERSION
        max_version = max_version if max_version != None else ControlConnection.DEFAULT_MAX_VERSION
        for v in [min_version, max_version]:
            if not ControlConnection.VALID_VERSION.match(str(v)):
                raise ValueError("Invalid SAM version "+repr(v))

        params = [("MIN", min_version), ("MAX", max_version)]
        if user != None:
            params.append(("USER", user))
            params.append(("PASSWORD", password if password != None else ""))

        with self.lock:
            if self.state == ControlConnection.STATE_VERSIONED:
                raise ProtocolError("Handshake already completed with version "+str(self.version))

            reply = self.__exchange(Command("HELLO", "VERSION", params))

            if not reply.ok:
                message = reply.message
                if reply.code == "NOVERSION" or (message != None and "version" in message.lower()):
                    SAM.log("SAM bridge rejected version bounds "+str(min_version)+"-"+str(max_version)+": "+reply.reason(), SAM.LOG_VERBOSE)
                    raise VersionMismatch(min_version, max_version, message=message, result=reply.code)
                else:
                    raise ProtocolError("Handshake failed: "+reply.reason(), line=reply.line, result=reply.code, message=message)

            version = reply.get("VERSION")
            if version == None or not ControlConnection.VALID_VERSION.match(version):
                raise ProtocolError("Handshake reply carries no valid version", line=reply.line)

            negotiated = ControlConnection.parse_version(version)
            if negotiated < ControlConnection.parse_version(min_version) or negotiated > ControlConnection.parse_version(max_version):
                # The router now considers the connection versioned
                SAM.log("SAM bridge selected version "+version+" outside "+str(min_version)+"-"+str(max_version)+", closing "+str(self), SAM.LOG_VERBOSE)
                self.close()
                raise VersionMismatch(min_version, max_version, message="router selected version "+version)

            self.version = version
            self.min_version = min_version
            self.max_version = max_version
            self.user = user
            self.password = password
            self.state = ControlConnection.STATE_VERSIONED
            SAM.log("Negotiated SAM version "+str(version)+" on "+str(self), SAM.LOG_DEBUG)
            return version

    def send_command(self, command):
        """
        Sends a command and blocks until its reply has been read.

        :param command: A :ref:`Command` instance.
        :returns: The :ref:`Reply` to the command.
        :raises: ``SAM.NotReady`` before the handshake, ``SAM.ConnectionClosed`` if the stream ended, ``SAM.ProtocolError`` if the reply does not parse, or ``SAM.TransportError`` on transport failure.
        """
        with self.lock:
            self.__check_ready()
            return self.__exchange(command)

    def send_payload(self, command, payload):
        """
        Writes a command line immediately followed by raw payload
        bytes. No reply is read.
        """
        with self.lock:
            self.__check_ready()
            SAM.log("SAM command: "+SAM.abbreviate(command.line(), 128)+" with "+str(len(payload))+" byte payload", SAM.LOG_EXTREME)
            self.__write(command.encode()+bytes(payload))

    def read_line(self):
        """
        Reads one complete line from the router.

        :returns: The line as a string, without the line terminator.
        """
        with self.lock:
            self.__check_open()
            line = self.__readline()
            SAM.log("SAM line: "+SAM.abbreviate(line, 128), SAM.LOG_EXTREME)
            return line

    def read_bytes(self, size):
        """
        Reads exactly ``size`` bytes from the router.
        """
        with self.lock:
            self.__check_open()
            data = b""
            while len(data) < size:
                try:
                    chunk = self.stream.read(size-len(data))
                except OSError as e:
                    self.__fail(e)
                if not chunk:
                    self.state = ControlConnection.STATE_CLOSED
                    raise ConnectionClosed("Stream ended after "+str(len(data))+" of "+str(size)+" bytes")
                data += chunk
            return data

    def release(self):
        """
        Hands the underlying stream over to the caller. After this,
        no further commands can be sent on this connection.

        :returns: The raw duplex byte stream.
        """
        with self.lock:
            self.__check_open()
            stream = self.stream
            self.stream = None
            self.state = ControlConnection.STATE_HANDED_OFF
            SAM.log("Stream released from "+str(self), SAM.LOG_EXTREME)
            return stream

    def close(self):
        """
        Closes the connection and its stream. Any session created on
        this connection ends with it.
        """
        stream = self.stream
        self.stream = None
        if self.state != ControlConnection.STATE_HANDED_OFF:
            self.state = ControlConnection.STATE_CLOSED
        if stream != None:
            try:
                stream.close()
            except OSError as e:
                SAM.log("Error while closing stream for "+str(self)+": "+str(e), SAM.LOG_DEBUG)

    def __check_open(self):
        if self.state == ControlConnection.STATE_HANDED_OFF:
            raise ConnectionClosed("The stream of this connection has been handed off")
        if self.state == ControlConnection.STATE_CLOSED or self.stream == None:
            raise ConnectionClosed("The connection is closed")

    def __check_ready(self):
        self.__check_open()
        if self.state != ControlConnection.STATE_VERSIONED:
            raise NotReady("The version handshake has not been completed")

    def __exchange(self, command):
        self.__check_open()
        SAM.log("SAM command: "+SAM.abbreviate(command.line(), 128), SAM.LOG_EXTREME)
        self.__write(command.encode())
        line = self.__readline()
        SAM.log("SAM reply: "+SAM.abbreviate(line, 128), SAM.LOG_EXTREME)
        return Reply.decode(line)

    def __write(self, data):
        try:
            self.stream.write(data)
            if hasattr(self.stream, "flush"):
                self.stream.flush()
        except OSError as e:
            self.__fail(e)

    def __readline(self):
        try:
            line = self.stream.readline(ControlConnection.MAX_LINE_LENGTH+1)
        except OSError as e:
            self.__fail(e)

        if not line:
            self.state = ControlConnection.STATE_CLOSED
            raise ConnectionClosed("The SAM bridge closed the connection")

        if not line.endswith(b"\n"):
            self.state = ControlConnection.STATE_CLOSED
            if len(line) > ControlConnection.MAX_LINE_LENGTH:
                raise ProtocolError("Reply line exceeds "+str(ControlConnection.MAX_LINE_LENGTH)+" bytes")
            else:
                raise ConnectionClosed("The SAM bridge closed the connection in the middle of a line")

        try:
            return line.decode(Command.ENCODING).rstrip("\r\n")
        except UnicodeDecodeError as e:
            raise ProtocolError("Reply is not valid "+Command.ENCODING, line=line) from e

    def __fail(self, e):
        self.state = ControlConnection.STATE_CLOSED
        SAM.log("Transport failure on "+str(self)+": "+str(e), SAM.LOG_VERBOSE)
        raise TransportError(e) from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __str__(self):
        if self.address != None:
            return "<ControlConnection "+str(self.address[0])+":"+str(self.address[1])+">"
        return "<ControlConnection>"
