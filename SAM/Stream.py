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

from io import RawIOBase
from contextlib import AbstractContextManager

class Stream(RawIOBase, AbstractContextManager):
    """
    A raw, bidirectional byte stream to an I2P peer. Streams are
    returned by :ref:`SAM.Session.connect` and :ref:`SAM.Session.accept`
    once the router has established the connection, and own the
    transport that was used to set them up. No further SAM commands
    are framed on a stream.

    This class generally need not be instantiated directly. For
    additional information on the API of this object, see the Python
    documentation for ``RawIOBase``. Wrap it in ``io.BufferedRWPair``
    or similar for buffered access.

    :param transport: The duplex byte stream released by a :ref:`SAM.ControlConnection`.
    :param peer: The :ref:`SAM.I2PAddress` of the remote end, if known.
    :param session_id: The nickname of the session the stream belongs to.
    :param params: (optional) Additional values the router sent when the stream was set up, such as ports.
    """
    def __init__(self, transport, peer=None, session_id=None, params=None):
        self._transport = transport
        self.peer = peer
        self.session_id = session_id
        self.params = dict(params) if params != None else {}

    @property
    def transport(self):
        return self._transport

    def readable(self):
        return True

    def writable(self):
        return True

    def readinto(self, buffer):
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        data = self._transport.read(len(buffer))
        if data == None:
            return None
        n = len(data)
        buffer[:n] = data
        return n

    def write(self, data):
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        data = bytes(data)
        self._transport.write(data)
        if hasattr(self._transport, "flush"):
            self._transport.flush()
        return len(data)

    def settimeout(self, timeout):
        if hasattr(self._transport, "settimeout"):
            self._transport.settimeout(timeout)

    def close(self):
        if not self.closed:
            try:
                self._transport.close()
            finally:
                super().close()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        return "<Stream to "+str(self.peer)+" on session "+str(self.session_id)+">"
