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
import shlex

from .Exceptions import ProtocolError

class Command:
    """
    An outgoing SAM command. Commands are immutable once created,
    and encode to exactly one newline-terminated line.

    :param verb: The command verb, such as ``SESSION``.
    :param subverb: The sub-verb, such as ``CREATE``, or ``None``.
    :param params: An ordered sequence of ``(key, value)`` tuples, or a dict.
    """

    ENCODING = "utf-8"

    def __init__(self, verb, subverb=None, params=None):
        if params == None:
            params = []
        elif isinstance(params, dict):
            params = list(params.items())

        self._verb = str(verb).upper()
        self._subverb = str(subverb).upper() if subverb != None else None
        self._params = tuple((str(k), Command.value_string(v)) for k, v in params)

        for token in [self._verb, self._subverb]+[k+v for k, v in self._params]:
            if token != None and ("\n" in token or "\r" in token):
                raise ValueError("Line breaks are not allowed in SAM commands")

    @staticmethod
    def value_string(value):
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    @staticmethod
    def quote(value):
        if value == "" or re.search(r"[\s\"]", value):
            return "\""+value.replace("\\", "\\\\").replace("\"", "\\\"")+"\""
        else:
            return value

    @property
    def verb(self):
        return self._verb

    @property
    def subverb(self):
        return self._subverb

    @property
    def params(self):
        return self._params

    def get(self, key, default=None):
        for k, v in self._params:
            if k == key:
                return v
        return default

    def line(self):
        tokens = [self._verb]
        if self._subverb != None:
            tokens.append(self._subverb)
        for key, value in self._params:
            tokens.append(key+"="+Command.quote(value))
        return " ".join(tokens)

    def encode(self):
        """
        :returns: The command as a newline-terminated line of bytes.
        """
        return (self.line()+"\n").encode(Command.ENCODING)

    def __eq__(self, other):
        if isinstance(other, Command):
            return self.line() == other.line()
        return NotImplemented

    def __hash__(self):
        return hash(self.line())

    def __repr__(self):
        return "<Command: "+self.line()+">"


class Reply:
    """
    A parsed reply line from the router. Two line shapes are
    understood; the bare form, where the first token is ``OK`` or
    ``ERROR``, and the standard SAM form, where a verb and sub-verb
    precede the parameters and the outcome is in ``RESULT``.

    ``result`` is always either ``Reply.OK`` or ``Reply.ERROR``.
    """

    OK    = "OK"
    ERROR = "ERROR"
    results = [OK, ERROR]

    VALID_WORD = re.compile(r"^[A-Z][A-Z0-9_]*$")
    VALID_PARAM = re.compile(r"^([A-Za-z0-9_.\-]+)=(.*)$", re.DOTALL)

    def __init__(self, result, params=None, verb=None, subverb=None, code=None, line=None):
        if not result in Reply.results:
            raise ValueError("Invalid reply result "+str(result))
        self.result = result
        self.params = dict(params) if params != None else {}
        self.verb = verb
        self.subverb = subverb
        self.code = code
        self.line = line

    @staticmethod
    def tokenize(line):
        # Only double quotes group values, apostrophes are literal
        lexer = shlex.shlex(line, posix=True)
        lexer.whitespace_split = True
        lexer.commenters = ""
        lexer.quotes = "\""
        lexer.escapedquotes = "\""
        return list(lexer)

    @staticmethod
    def decode(line):
        """
        Parses one line of router output.

        :param line: The line as ``str`` or ``bytes``, with or without the trailing newline.
        :returns: A :ref:`Reply` instance.
        :raises: ``SAM.ProtocolError`` if the line does not parse.
        """
        if isinstance(line, (bytes, bytearray)):
            try:
                line = bytes(line).decode(Command.ENCODING)
            except UnicodeDecodeError as e:
                raise ProtocolError("Reply is not valid "+Command.ENCODING, line=line) from e

        line = line.rstrip("\r\n")
        try:
            tokens = Reply.tokenize(line)
        except ValueError as e:
            raise ProtocolError("Malformed reply: "+str(e), line=line) from e

        if len(tokens) == 0:
            raise ProtocolError("Empty reply", line=line)

        verb = None
        subverb = None
        if tokens[0] in Reply.results:
            result = tokens[0]
            param_tokens = tokens[1:]
        elif len(tokens) >= 2 and Reply.VALID_WORD.match(tokens[0]) and Reply.VALID_WORD.match(tokens[1]):
            verb = tokens[0]
            subverb = tokens[1]
            param_tokens = tokens[2:]
            result = None
        else:
            raise ProtocolError("Reply does not start with a result or a verb", line=line)

        params = {}
        for token in param_tokens:
            match = Reply.VALID_PARAM.match(token)
            if not match:
                raise ProtocolError("Reply parameter without key: "+repr(token), line=line)
            params[match.group(1)] = match.group(2)

        code = params.get("RESULT")
        if result == None:
            if code == None or code == Reply.OK:
                result = Reply.OK
            else:
                result = Reply.ERROR

        return Reply(result, params, verb=verb, subverb=subverb, code=code, line=line)

    @property
    def ok(self):
        return self.result == Reply.OK

    @property
    def message(self):
        return self.params.get("MESSAGE")

    def reason(self):
        """
        :returns: The most descriptive error text available in this reply.
        """
        if self.message != None and self.code != None and self.code != Reply.ERROR:
            return self.code+": "+self.message
        elif self.message != None:
            return self.message
        elif self.code != None:
            return self.code
        else:
            return self.result

    def get(self, key, default=None):
        return self.params.get(key, default)

    def __getitem__(self, key):
        return self.params[key]

    def __contains__(self, key):
        return key in self.params

    def __repr__(self):
        if self.line != None:
            return "<Reply: "+self.line+">"
        return "<Reply: "+self.result+" "+str(self.params)+">"
