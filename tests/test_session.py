import os
import socket
import struct
import threading
import unittest

import SAM
from SAM.Address import I2PAddress, i2p_b64encode
from SAM.Connection import ControlConnection
from SAM.Session import Session

from . import ScriptedStream, handshaken

SHORT_DEST = i2p_b64encode(bytes(range(48)))
PEER_DATA = bytes([0x42])*384+bytes([5, 0, 0])
PEER_DEST = i2p_b64encode(PEER_DATA)
PEER = I2PAddress.from_base64(PEER_DEST)

def status_ok(destination=SHORT_DEST):
    return ("SESSION STATUS RESULT=OK DESTINATION="+destination+"\n").encode()

def create(style, extra=b"", **kwargs):
    connection, stream = handshaken([status_ok(), extra])
    session = Session.create(connection, style, nickname="test", **kwargs)
    stream.reset_output()
    return session, stream

class TestSessionCreate(unittest.TestCase):

    def test_create_transient(self):
        connection, stream = handshaken(status_ok())
        session = Session.create(connection, Session.STREAM, nickname="test")
        self.assertEqual(stream.written_lines(), ["SESSION CREATE STYLE=STREAM ID=test DESTINATION=TRANSIENT SIGNATURE_TYPE=7"])
        self.assertEqual(session.id, "test")
        self.assertEqual(session.style, Session.STREAM)
        self.assertEqual(session.destination, I2PAddress.from_base64(SHORT_DEST))
        self.assertEqual(session.private_destination, SHORT_DEST)
        self.assertIs(session.connection, connection)

    def test_create_with_options(self):
        connection, stream = handshaken(status_ok())
        session = Session.create(connection, "datagram", nickname="dg", options={"inbound.length": 2, "outbound.length": 1}, signature_type=Session.SIG_ECDSA_SHA256_P256)
        self.assertEqual(stream.written_lines(), ["SESSION CREATE STYLE=DATAGRAM ID=dg DESTINATION=TRANSIENT SIGNATURE_TYPE=1 inbound.length=2 outbound.length=1"])
        self.assertEqual(session.style, Session.DATAGRAM)
        self.assertEqual(session.options, {"inbound.length": 2, "outbound.length": 1})

    def test_create_with_private_destination(self):
        public = bytes([0x33])*384+bytes([5])+struct.pack("!H", 7)+bytes(7)
        private = i2p_b64encode(public+os.urandom(288))
        connection, stream = handshaken(status_ok(private))
        session = Session.create(connection, Session.RAW, nickname="raw", destination=private)
        self.assertEqual(stream.written_lines(), ["SESSION CREATE STYLE=RAW ID=raw DESTINATION="+private])
        self.assertEqual(session.destination, I2PAddress.from_destination(public))
        self.assertEqual(session.public_destination, i2p_b64encode(public))
        self.assertEqual(session.private_destination, private)

    def test_destination_not_echoed(self):
        connection, stream = handshaken(b"SESSION STATUS RESULT=OK\n")
        session = Session.create(connection, Session.STREAM, nickname="test", destination=SHORT_DEST)
        self.assertEqual(session.destination, I2PAddress.from_base64(SHORT_DEST))

        connection, stream = handshaken(b"SESSION STATUS RESULT=OK\n")
        self.assertRaises(SAM.ProtocolError, Session.create, connection, Session.STREAM)

    def test_generated_nickname(self):
        connection, stream = handshaken(status_ok())
        session = Session.create(connection, Session.STREAM)
        self.assertTrue(session.id.startswith(Session.NICKNAME_PREFIX))
        self.assertEqual(len(session.id), len(Session.NICKNAME_PREFIX)+Session.NICKNAME_LENGTH)
        self.assertIn("ID="+session.id, stream.written_lines()[0])

    def test_create_failed(self):
        connection, stream = handshaken(b'SESSION STATUS RESULT=DUPLICATED_ID MESSAGE="Duplicate session ID"\n')
        with self.assertRaises(SAM.SessionCreateFailed) as cm:
            Session.create(connection, Session.STREAM, nickname="taken")
        self.assertEqual(cm.exception.nickname, "taken")
        self.assertEqual(cm.exception.result, "DUPLICATED_ID")
        self.assertIn("Duplicate session ID", cm.exception.reason)

    def test_create_errors(self):
        connection = ControlConnection.open(ScriptedStream(status_ok()))
        self.assertRaises(SAM.NotReady, Session.create, connection, Session.STREAM)

        connection, stream = handshaken(status_ok())
        self.assertRaises(ValueError, Session.create, connection, "BROADCAST")

        connection, stream = handshaken(b"SESSION STATUS RESULT=OK")
        self.assertRaises(SAM.ConnectionClosed, Session.create, connection, Session.STREAM)

    def test_close(self):
        session, stream = create(Session.STREAM)
        with session:
            pass
        self.assertTrue(stream.closed)
        self.assertEqual(session.connection.state, ControlConnection.STATE_CLOSED)


class TestStreams(unittest.TestCase):

    def test_connect(self):
        session, stream = create(Session.STREAM)
        connection, peer_stream = handshaken(b"STREAM STATUS RESULT=OK\nHTTP/1.0 200 OK\r\n")

        s = session.connect(PEER, connection=connection)
        self.assertEqual(peer_stream.written_lines(), ["STREAM CONNECT ID=test DESTINATION="+PEER.to_string()+" SILENT=false"])
        self.assertEqual(s.peer, PEER)
        self.assertEqual(s.session_id, "test")
        self.assertIs(s.transport, peer_stream)

        # The stream now owns the transport, and carries raw bytes only
        self.assertEqual(connection.state, ControlConnection.STATE_HANDED_OFF)
        self.assertRaises(SAM.ConnectionClosed, connection.send_command, SAM.Command("NAMING", "LOOKUP", [("NAME", "x.i2p")]))
        self.assertEqual(s.read(8), b"HTTP/1.0")
        peer_stream.reset_output()
        s.write(b"GET / HTTP/1.0\r\n\r\n")
        self.assertEqual(peer_stream.written(), b"GET / HTTP/1.0\r\n\r\n")

        s.close()
        self.assertTrue(peer_stream.closed)
        self.assertRaises(ValueError, s.write, b"more")

        # Nothing was sent on the session connection
        self.assertEqual(stream.written(), b"")

    def test_connect_with_hostname_and_options(self):
        session, stream = create(Session.STREAM)
        connection, peer_stream = handshaken(b"STREAM STATUS RESULT=OK\n")
        s = session.connect("example.i2p", options={"TO_PORT": 80}, connection=connection)
        self.assertEqual(peer_stream.written_lines(), ["STREAM CONNECT ID=test DESTINATION=example.i2p SILENT=false TO_PORT=80"])
        self.assertEqual(s.peer, I2PAddress.from_hostname("example.i2p"))

    def test_connect_unreachable(self):
        session, stream = create(Session.STREAM)
        connection, peer_stream = handshaken(b'STREAM STATUS RESULT=CANT_REACH_PEER MESSAGE="Connection timed out"\n')
        with self.assertRaises(SAM.PeerUnreachable) as cm:
            session.connect(PEER, connection=connection)
        self.assertEqual(cm.exception.peer, PEER)
        self.assertEqual(cm.exception.result, "CANT_REACH_PEER")
        self.assertIn("Connection timed out", cm.exception.reason)

        # A caller supplied connection stays usable after a refusal
        self.assertTrue(connection.is_ready)

    def test_connect_opens_connection(self):
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        address = listener.getsockname()
        received = []

        def router():
            client, _ = listener.accept()
            with client, client.makefile("rb") as reader:
                received.append(reader.readline())
                client.sendall(b"HELLO REPLY RESULT=OK VERSION=3.2\n")
                received.append(reader.readline())
                client.sendall(b"STREAM STATUS RESULT=OK\npong")
                received.append(reader.read(4))

        thread = threading.Thread(target=router, daemon=True)
        thread.start()
        try:
            connection, stream = handshaken(status_ok(), address=address)
            connection.user = "alice"
            connection.password = "secret"
            session = Session.create(connection, Session.STREAM, nickname="test")

            with session.connect(PEER) as s:
                s.settimeout(5)
                self.assertEqual(s.read(4), b"pong")
                s.write(b"ping")
            thread.join(5)
        finally:
            listener.close()

        self.assertEqual(received[0], b"HELLO VERSION MIN=3.1 MAX=3.3 USER=alice PASSWORD=secret\n")
        self.assertEqual(received[1], ("STREAM CONNECT ID=test DESTINATION="+PEER.to_string()+" SILENT=false\n").encode())
        self.assertEqual(received[2], b"ping")

    def test_connect_requires_address(self):
        session, stream = create(Session.STREAM)
        self.assertRaises(ValueError, session.connect, PEER)
        self.assertRaises(ValueError, session.accept)
        self.assertEqual(stream.written(), b"")

    def test_connect_style_mismatch(self):
        for style in [Session.DATAGRAM, Session.RAW]:
            session, stream = create(style)
            with self.assertRaises(SAM.StyleMismatch) as cm:
                session.connect(PEER)
            self.assertEqual(cm.exception.expected, (Session.STREAM,))
            self.assertEqual(cm.exception.actual, style)
            self.assertRaises(SAM.StyleMismatch, session.accept)
            self.assertRaises(SAM.StyleMismatch, session.forward, 8080)
            self.assertEqual(stream.written(), b"")

    def test_accept(self):
        session, stream = create(Session.STREAM)
        connection, peer_stream = handshaken(("STREAM STATUS RESULT=OK\n"+PEER_DEST+" FROM_PORT=1234 TO_PORT=80\nhello").encode())
        s = session.accept(connection=connection)
        self.assertEqual(peer_stream.written_lines(), ["STREAM ACCEPT ID=test SILENT=false"])
        self.assertEqual(s.peer, PEER)
        self.assertEqual(s.params["FROM_PORT"], "1234")
        self.assertEqual(s.params["DESTINATION"], PEER_DEST)
        self.assertEqual(s.read(5), b"hello")

    def test_accept_failed(self):
        session, stream = create(Session.STREAM)
        connection, peer_stream = handshaken(b'STREAM STATUS RESULT=INVALID_ID MESSAGE="No such session"\n')
        self.assertRaises(SAM.PeerUnreachable, session.accept, connection=connection)

        connection, peer_stream = handshaken(b"STREAM STATUS RESULT=OK\n++++\n")
        self.assertRaises(SAM.BadAddressEncoding, session.accept, connection=connection)
        self.assertTrue(peer_stream.closed)

    def test_forward(self):
        session, stream = create(Session.STREAM)
        connection, peer_stream = handshaken(b"STREAM STATUS RESULT=OK\n")
        forwarding = session.forward(8080, host="127.0.0.1", connection=connection)
        self.assertIs(forwarding, connection)
        self.assertEqual(peer_stream.written_lines(), ["STREAM FORWARD ID=test PORT=8080 HOST=127.0.0.1 SILENT=false"])


class TestDatagrams(unittest.TestCase):

    def test_send_datagram(self):
        session, stream = create(Session.DATAGRAM)
        session.send_datagram(PEER, b"hello")
        self.assertEqual(stream.written(), ("DATAGRAM SEND DESTINATION="+PEER.to_string()+" SIZE=5\n").encode()+b"hello")

    def test_send_raw_to_full_destination(self):
        session, stream = create(Session.RAW)
        session.send_datagram(PEER_DEST, b"\x00\x01\n\x02", options={"PROTOCOL": 18})
        self.assertEqual(stream.written(), ("RAW SEND DESTINATION="+PEER_DEST+" SIZE=4 PROTOCOL=18\n").encode()+b"\x00\x01\n\x02")

    def test_send_datagram_style_mismatch(self):
        session, stream = create(Session.STREAM)
        with self.assertRaises(SAM.StyleMismatch) as cm:
            session.send_datagram(PEER, b"hello")
        self.assertEqual(cm.exception.expected, (Session.DATAGRAM, Session.RAW))
        self.assertEqual(cm.exception.actual, Session.STREAM)
        self.assertEqual(stream.written(), b"")
        self.assertRaises(SAM.StyleMismatch, session.receive_datagram)

    def test_send_datagram_transport_failure(self):
        session, stream = create(Session.DATAGRAM)
        stream.fail_writes = True
        self.assertRaises(SAM.TransportError, session.send_datagram, PEER, b"hello")

    def test_receive_datagram(self):
        incoming = ("DATAGRAM RECEIVED DESTINATION="+PEER_DEST+" SIZE=6\n").encode()+b"hi\nyou"
        session, stream = create(Session.DATAGRAM, incoming)
        peer, payload = session.receive_datagram()
        self.assertEqual(peer, PEER)
        self.assertEqual(payload, b"hi\nyou")

    def test_receive_raw(self):
        session, stream = create(Session.RAW, b"RAW RECEIVED SIZE=3\nabcRAW RECEIVED SIZE=0\n")
        self.assertEqual(session.receive_datagram(), (None, b"abc"))
        self.assertEqual(session.receive_datagram(), (None, b""))

    def test_receive_unexpected(self):
        session, stream = create(Session.DATAGRAM, b"RAW RECEIVED SIZE=3\nabc")
        self.assertRaises(SAM.ProtocolError, session.receive_datagram)

        session, stream = create(Session.DATAGRAM, b"DATAGRAM RECEIVED SIZE=3\nabc")
        self.assertRaises(SAM.ProtocolError, session.receive_datagram)

        session, stream = create(Session.RAW, b"RAW RECEIVED SIZE=many\n")
        self.assertRaises(SAM.ProtocolError, session.receive_datagram)

if __name__ == '__main__':
    unittest.main(verbosity=2)
