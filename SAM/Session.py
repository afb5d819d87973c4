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

import random
import string

import SAM
from .Address import I2PAddress, i2p_b64decode, i2p_b64encode
from .Connection import ControlConnection
from .Message import Command, Reply
from .Stream import Stream
from .Exceptions import SessionCreateFailed, StyleMismatch, PeerUnreachable
from .Exceptions import ProtocolError, BadAddressEncoding

class Session:
    """
    A named SAM session. A session is created on a handshaken
    :ref:`SAM.ControlConnection` and lives exactly as long as that
    connection stays open. Closing the connection destroys the
    session in the router.

    Use :ref:`SAM.Session.create` to create sessions.
    """

    STREAM   = "STREAM"
    DATAGRAM = "DATAGRAM"
    RAW      = "RAW"
    styles   = [STREAM, DATAGRAM, RAW]

    TRANSIENT_DESTINATION = "TRANSIENT"

    SIG_ECDSA_SHA256_P256    = 1
    SIG_ECDSA_SHA384_P384    = 2
    SIG_ECDSA_SHA512_P521    = 3
    SIG_EdDSA_SHA512_Ed25519 = 7
    DEFAULT_SIGNATURE_TYPE   = SIG_EdDSA_SHA512_Ed25519

    NICKNAME_PREFIX = "sam-"
    NICKNAME_LENGTH = 6

    @staticmethod
    def generate_nickname(length=NICKNAME_LENGTH):
        rand = random.SystemRandom()
        sid = [rand.choice(string.ascii_letters) for _ in range(length)]
        return Session.NICKNAME_PREFIX+"".join(sid)

    @staticmethod
    def create(connection, style, nickname=None, options=None, destination=None, signature_type=None):
        """
        Creates a new session on the router.

        :param connection: A handshaken :ref:`SAM.ControlConnection`. The session is bound to it.
        :param style: ``Session.STREAM``, ``Session.DATAGRAM`` or ``Session.RAW``.
        :param nickname: (optional) Session id. A random nickname is generated if not specified.
        :param options: (optional) A dict of I2CP and SAM options.
        :param destination: (optional) A base64 private destination to use. A transient destination is created by the router if not specified.
        :param signature_type: (optional) Signature type of a transient destination, defaults to EdDSA-SHA512-Ed25519.
        :returns: A :ref:`SAM.Session` instance.
        :raises: ``SAM.SessionCreateFailed`` if the router refuses the session.
        """
        style = str(style).upper()
        if not style in Session.styles:
            raise ValueError("Unknown session style "+repr(style))

        nickname = nickname if nickname != None else Session.generate_nickname()
        options = dict(options) if options != None else {}

        params = [("STYLE", style), ("ID", nickname)]
        if destination == None:
            params.append(("DESTINATION", Session.TRANSIENT_DESTINATION))
            if signature_type == None:
                signature_type = Session.DEFAULT_SIGNATURE_TYPE
            params.append(("SIGNATURE_TYPE", signature_type))
        else:
            params.append(("DESTINATION", destination))
            if signature_type != None:
                params.append(("SIGNATURE_TYPE", signature_type))

        params.extend(options.items())

        SAM.log("Creating "+style+" session "+str(nickname), SAM.LOG_DEBUG)
        reply = connection.send_command(Command("SESSION", "CREATE", params))
        if not reply.ok:
            SAM.log("Could not create session "+str(nickname)+": "+reply.reason(), SAM.LOG_VERBOSE)
            raise SessionCreateFailed(nickname, reply.reason(), result=reply.code)

        private_destination = reply.get("DESTINATION", destination)
        if private_destination == None:
            raise ProtocolError("Session created without a destination", line=reply.line)

        try:
            public = I2PAddress.public_destination(i2p_b64decode(private_destination))
        except (ValueError, TypeError) as e:
            raise BadAddressEncoding(private_destination, e) from e

        local_destination = I2PAddress.from_destination(public)
        session = Session(connection, style, nickname, local_destination, options=options, private_destination=private_destination)
        session.public_destination = i2p_b64encode(public)

        SAM.log("Created "+str(session), SAM.LOG_VERBOSE)
        return session

    def __init__(self, connection, style, nickname, destination, options=None, private_destination=None):
        self.connection = connection
        self.style = style
        self.id = nickname
        self.nickname = nickname
        self.destination = destination
        self.options = dict(options) if options != None else {}
        self.private_destination = private_destination
        self.public_destination = None

    def __require_style(self, *styles):
        if not self.style in styles:
            raise StyleMismatch(styles, self.style)

    def open_connection(self):
        """
        Opens and handshakes a new connection to the SAM bridge this
        session was created on, with the same version bounds and
        credentials.

        :returns: A handshaken :ref:`SAM.ControlConnection`.
        :raises: ``ValueError`` if the session connection was not opened by address.
        """
        if self.connection.address == None:
            raise ValueError("The session connection has no address to open additional connections to")

        host, port = self.connection.address
        connection = ControlConnection.connect(host, port)
        try:
            connection.handshake(self.connection.min_version, self.connection.max_version, user=self.connection.user, password=self.connection.password)
        except Exception:
            connection.close()
            raise

        return connection

    def __stream_command(self, connection, command, peer):
        owned = connection == None
        if owned:
            connection = self.open_connection()

        try:
            reply = connection.send_command(command)
        except Exception:
            if owned:
                connection.close()
            raise

        if not reply.ok:
            if owned:
                connection.close()
            raise PeerUnreachable(peer, reply.reason(), result=reply.code)

        return connection, reply

    def connect(self, peer, options=None, connection=None):
        """
        Opens a stream to a peer.

        :param peer: An :ref:`SAM.I2PAddress`, or any string accepted by :ref:`SAM.I2PAddress.parse`.
        :param options: (optional) A dict of additional ``STREAM CONNECT`` options, such as ``FROM_PORT`` and ``TO_PORT``.
        :param connection: (optional) A handshaken connection to send the command on. A new connection is opened if not specified.
        :returns: A :ref:`SAM.Stream` that owns the transport of the connection used.
        :raises: ``SAM.StyleMismatch`` unless this is a stream session, ``SAM.PeerUnreachable`` if the router could not reach the peer.
        """
        self.__require_style(Session.STREAM)
        peer = I2PAddress.parse(peer)

        params = [("ID", self.id), ("DESTINATION", peer.to_string()), ("SILENT", False)]
        if options != None:
            params.extend(dict(options).items())

        SAM.log("Connecting stream from "+str(self)+" to "+str(peer), SAM.LOG_DEBUG)
        connection, reply = self.__stream_command(connection, Command("STREAM", "CONNECT", params), peer)

        stream = Stream(connection.release(), peer=peer, session_id=self.id)
        SAM.log("Stream connected from "+str(self)+" to "+str(peer), SAM.LOG_VERBOSE)
        return stream

    def accept(self, options=None, connection=None):
        """
        Waits for an incoming stream. Blocks until a peer connects.

        :param options: (optional) A dict of additional ``STREAM ACCEPT`` options.
        :param connection: (optional) A handshaken connection to send the command on. A new connection is opened if not specified.
        :returns: A :ref:`SAM.Stream` whose ``peer`` is the address of the connecting destination.
        :raises: ``SAM.StyleMismatch`` unless this is a stream session, ``SAM.PeerUnreachable`` if the router refused to accept.
        """
        self.__require_style(Session.STREAM)

        params = [("ID", self.id), ("SILENT", False)]
        if options != None:
            params.extend(dict(options).items())

        SAM.log("Accepting streams on "+str(self), SAM.LOG_DEBUG)
        connection, reply = self.__stream_command(connection, Command("STREAM", "ACCEPT", params), self.id)

        # The router announces the connecting peer on a line of its own,
        # optionally followed by port parameters
        try:
            try:
                tokens = Reply.tokenize(connection.read_line())
            except ValueError as e:
                raise ProtocolError("Malformed peer announcement: "+str(e)) from e

            if len(tokens) == 0:
                raise ProtocolError("Empty peer announcement")

            peer_destination = tokens[0]
            peer = I2PAddress.from_base64(peer_destination)

        except Exception:
            connection.close()
            raise

        params = {}
        for token in tokens[1:]:
            if "=" in token:
                key, value = token.split("=", 1)
                params[key] = value
        params["DESTINATION"] = peer_destination

        stream = Stream(connection.release(), peer=peer, session_id=self.id, params=params)
        SAM.log("Accepted stream from "+str(peer)+" on "+str(self), SAM.LOG_VERBOSE)
        return stream

    def forward(self, port, host=None, options=None, connection=None):
        """
        Asks the router to forward incoming streams for this session
        to a local TCP port. Forwarding lasts as long as the returned
        connection stays open.

        :param port: Local port to forward to.
        :param host: (optional) Local host to forward to, defaults to the host the SAM bridge sees the client on.
        :returns: The :ref:`SAM.ControlConnection` carrying the forward.
        """
        self.__require_style(Session.STREAM)

        params = [("ID", self.id), ("PORT", int(port))]
        if host != None:
            params.append(("HOST", host))
        params.append(("SILENT", False))
        if options != None:
            params.extend(dict(options).items())

        connection, reply = self.__stream_command(connection, Command("STREAM", "FORWARD", params), self.id)
        SAM.log("Forwarding streams on "+str(self)+" to port "+str(port), SAM.LOG_VERBOSE)
        return connection

    def send_datagram(self, peer, payload, options=None):
        """
        Sends a datagram to a peer. Delivery is best-effort, and no
        acknowledgement is received.

        :param peer: An :ref:`SAM.I2PAddress`, a full base64 destination or any string accepted by :ref:`SAM.I2PAddress.parse`.
        :param payload: The datagram payload as bytes.
        :param options: (optional) A dict of additional options, such as ``FROM_PORT`` and ``TO_PORT``.
        :raises: ``SAM.StyleMismatch`` unless this is a datagram or raw session, ``SAM.TransportError`` on transport failure.
        """
        self.__require_style(Session.DATAGRAM, Session.RAW)
        if isinstance(peer, I2PAddress):
            destination = peer.to_string()
        else:
            destination = str(peer)
            I2PAddress.parse(destination)

        payload = bytes(payload)
        params = [("DESTINATION", destination), ("SIZE", len(payload))]
        if options != None:
            params.extend(dict(options).items())

        self.connection.send_payload(Command(self.style, "SEND", params), payload)
        SAM.log("Sent "+str(len(payload))+" byte "+self.style.lower()+" to "+SAM.abbreviate(destination)+" from "+str(self), SAM.LOG_EXTREME)

    def receive_datagram(self):
        """
        Blocks until a datagram for this session arrives on the session
        connection.

        :returns: A ``(peer, payload)`` tuple. ``peer`` is the sender's :ref:`SAM.I2PAddress` for repliable datagrams, and ``None`` for raw datagrams.
        :raises: ``SAM.StyleMismatch`` unless this is a datagram or raw session, ``SAM.ProtocolError`` on unexpected input.
        """
        self.__require_style(Session.DATAGRAM, Session.RAW)
        with self.connection.lock:
            message = Reply.decode(self.connection.read_line())
            if message.verb != self.style or message.subverb != "RECEIVED":
                raise ProtocolError("Expected "+self.style+" RECEIVED, got "+str(message.line), line=message.line)

            try:
                size = int(message["SIZE"])
            except (KeyError, ValueError) as e:
                raise ProtocolError("Received datagram without a valid size", line=message.line) from e

            payload = self.connection.read_bytes(size)

        peer = None
        if self.style == Session.DATAGRAM:
            if not "DESTINATION" in message:
                raise ProtocolError("Received datagram without a sender", line=message.line)
            peer = I2PAddress.from_base64(message["DESTINATION"])

        return peer, payload

    def close(self):
        """
        Destroys the session by closing its connection.
        """
        SAM.log("Closing "+str(self), SAM.LOG_DEBUG)
        self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __str__(self):
        return "<"+self.style+" session "+str(self.id)+" "+str(self.destination)+">"
