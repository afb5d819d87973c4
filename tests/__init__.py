import io
import threading

import SAM

HELLO_OK = b"HELLO REPLY RESULT=OK VERSION=3.1\n"

class ScriptedStream:
    """
    An in-memory duplex stream. Everything the client writes is
    collected in ``output``, and reads are served from the scripted
    router input.
    """
    def __init__(self, router_input=b""):
        if isinstance(router_input, (list, tuple)):
            router_input = b"".join(router_input)
        self.input = io.BytesIO(router_input)
        self.output = io.BytesIO()
        self.closed = False
        self.fail_writes = False

    def readline(self, limit=-1):
        if self.closed:
            raise OSError("stream closed")
        return self.input.readline(limit)

    def read(self, size=-1):
        if self.closed:
            raise OSError("stream closed")
        return self.input.read(size)

    def write(self, data):
        if self.closed or self.fail_writes:
            raise OSError("broken pipe")
        self.output.write(data)
        return len(data)

    def flush(self):
        pass

    def close(self):
        self.closed = True

    def written(self):
        return self.output.getvalue()

    def written_lines(self):
        return [l.decode("utf-8") for l in self.output.getvalue().split(b"\n") if l != b""]

    def reset_output(self):
        self.output = io.BytesIO()

def handshaken(router_input=b"", address=None):
    """
    Returns a versioned connection over a scripted stream, with the
    handshake already consumed and its output discarded.
    """
    if isinstance(router_input, (list, tuple)):
        router_input = b"".join(router_input)
    stream = ScriptedStream(HELLO_OK+router_input)
    connection = SAM.ControlConnection.open(stream, address=address)
    connection.handshake("3.1", "3.3")
    stream.reset_output()
    return connection, stream

class EchoRouter:
    """
    A stream that answers every ``NAMING LOOKUP`` with the looked up
    name, for checking that concurrent exchanges never interleave.
    """
    def __init__(self):
        self.pending = []
        self.lock = threading.Lock()

    def write(self, data):
        line = data.decode("utf-8").strip()
        with self.lock:
            if line.startswith("HELLO"):
                self.pending.append(HELLO_OK)
            else:
                name = line.split("NAME=", 1)[1]
                self.pending.append(("NAMING REPLY RESULT=OK NAME="+name+" VALUE="+name+"\n").encode("utf-8"))
        return len(data)

    def readline(self, limit=-1):
        # Yield to other threads between write and read
        threading.Event().wait(0.001)
        with self.lock:
            if len(self.pending) == 0:
                return b""
            return self.pending.pop(0)

    def read(self, size=-1):
        return b""

    def close(self):
        pass
