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

import SAM
from .Address import I2PAddress
from .Message import Command
from .Exceptions import NameNotFound, ProtocolError

class NamingResolver:
    """
    Resolves hostnames and special names such as ``ME`` through the
    naming service of the router. The resolver keeps no state of its
    own; any caching happens inside the router.
    """

    KEY_NOT_FOUND = "KEY_NOT_FOUND"
    NOT_FOUND_WORDING = ["not found", "no such"]

    @staticmethod
    def lookup_destination(connection, name):
        """
        :param connection: A handshaken :ref:`SAM.ControlConnection`.
        :param name: The name to resolve.
        :returns: The full base64 destination for the name.
        :raises: ``SAM.NameNotFound`` if the router has no destination for the name, ``SAM.ProtocolError`` on any other error.
        """
        name = str(name)
        reply = connection.send_command(Command("NAMING", "LOOKUP", [("NAME", name)]))

        if not reply.ok:
            message = reply.message
            wording = message.lower() if message != None else ""
            if reply.code == NamingResolver.KEY_NOT_FOUND or any(w in wording for w in NamingResolver.NOT_FOUND_WORDING):
                SAM.log("No destination found for "+name, SAM.LOG_DEBUG)
                raise NameNotFound(name, message=message)
            else:
                raise ProtocolError("Lookup of "+repr(name)+" failed: "+reply.reason(), line=reply.line, result=reply.code, message=message)

        value = reply.get("VALUE")
        if value == None or value == "":
            raise ProtocolError("Lookup reply for "+repr(name)+" carries no value", line=reply.line)

        SAM.log("Resolved "+name+" to "+SAM.abbreviate(value), SAM.LOG_EXTREME)
        return value

    @staticmethod
    def lookup(connection, name):
        """
        :param connection: A handshaken :ref:`SAM.ControlConnection`.
        :param name: The name to resolve.
        :returns: An :ref:`SAM.I2PAddress` in base32 form for the name.
        :raises: ``SAM.NameNotFound`` if the router has no destination for the name, ``SAM.ProtocolError`` on any other error, or ``SAM.BadAddressEncoding`` if the returned destination does not decode.
        """
        return I2PAddress.from_base64(NamingResolver.lookup_destination(connection, name))
