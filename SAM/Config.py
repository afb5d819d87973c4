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

import os

from configobj import ConfigObj

import SAM
from .Connection import ControlConnection

class Config:
    """
    Client configuration for connecting to a SAM bridge. Values are
    read from ``config`` in the configuration directory if it exists,
    and the ``I2P_SAM_ADDRESS`` environment variable, in ``host:port``
    form, overrides the configured bridge address.

    :param configdir: (optional) Path to an alternative configuration directory, defaults to ``~/.samclient``.
    :param apply_logging: (optional) Whether to apply the configured log level to ``SAM.loglevel``.
    """

    ENV_SAM_ADDRESS = "I2P_SAM_ADDRESS"
    CONFIG_FILENAME = "config"

    @staticmethod
    def default_configdir():
        return os.path.join(os.path.expanduser("~"), ".samclient")

    @staticmethod
    def address_from_string(address_string):
        """
        :param address_string: A ``host:port`` string.
        :returns: A ``(host, port)`` tuple.
        """
        host, separator, port = str(address_string).strip().rpartition(":")
        if separator == "" or host == "":
            raise ValueError("Invalid SAM address "+repr(address_string)+", expected host:port")
        return (host, int(port))

    def __init__(self, configdir=None, apply_logging=False):
        self.configdir = configdir if configdir != None else Config.default_configdir()
        self.configpath = os.path.join(self.configdir, Config.CONFIG_FILENAME)

        self.host = ControlConnection.DEFAULT_HOST
        self.port = ControlConnection.DEFAULT_PORT
        self.min_version = ControlConnection.DEFAULT_MIN_VERSION
        self.max_version = ControlConnection.DEFAULT_MAX_VERSION
        self.signature_type = None
        self.user = None
        self.password = None
        self.timeout = None
        self.loglevel = None

        if os.path.isfile(self.configpath):
            try:
                self.config = ConfigObj(self.configpath)
            except Exception as e:
                SAM.log("Could not parse the configuration at "+self.configpath, SAM.LOG_ERROR)
                SAM.log("Check your configuration file for errors!", SAM.LOG_ERROR)
                raise ValueError("Invalid configuration at "+self.configpath+": "+str(e)) from e
            self.__apply_config()
            SAM.log("Configuration loaded from "+self.configpath, SAM.LOG_VERBOSE)
        else:
            self.config = None
            SAM.log("No configuration at "+self.configpath+", using defaults", SAM.LOG_DEBUG)

        env_address = os.getenv(Config.ENV_SAM_ADDRESS)
        if env_address:
            self.host, self.port = Config.address_from_string(env_address)
            SAM.log("Using SAM address "+env_address+" from environment", SAM.LOG_DEBUG)

        if apply_logging and self.loglevel != None:
            SAM.loglevel = self.loglevel

    def __apply_config(self):
        if "logging" in self.config:
            for option in self.config["logging"]:
                if option == "loglevel":
                    value = self.config["logging"].as_int(option)
                    if value < 0:
                        value = 0
                    if value > 7:
                        value = 7
                    self.loglevel = value

        if "sam" in self.config:
            for option in self.config["sam"]:
                value = self.config["sam"][option]
                if option == "host":
                    self.host = str(value)
                if option == "port":
                    self.port = self.config["sam"].as_int(option)
                if option == "min_version":
                    self.min_version = str(value)
                if option == "max_version":
                    self.max_version = str(value)
                if option == "signature_type":
                    self.signature_type = self.config["sam"].as_int(option)
                if option == "user":
                    self.user = str(value)
                if option == "password":
                    self.password = str(value)
                if option == "timeout":
                    self.timeout = self.config["sam"].as_float(option)

    @property
    def address(self):
        return (self.host, self.port)

    def connect(self):
        """
        Opens a connection to the configured SAM bridge and performs
        the version handshake.

        :returns: A handshaken :ref:`SAM.ControlConnection`.
        """
        connection = ControlConnection.connect(self.host, self.port, timeout=self.timeout)
        try:
            connection.handshake(self.min_version, self.max_version, user=self.user, password=self.password)
        except Exception:
            connection.close()
            raise

        return connection

    def create_session(self, style, nickname=None, options=None, destination=None):
        """
        Opens a connection to the configured SAM bridge and creates a
        session on it, using the configured signature type for
        transient destinations.

        :returns: A :ref:`SAM.Session` that owns the new connection.
        """
        connection = self.connect()
        try:
            return SAM.Session.create(connection, style, nickname=nickname, options=options, destination=destination, signature_type=self.signature_type)
        except Exception:
            connection.close()
            raise

    def write_default(self):
        """
        Writes the default configuration to the configuration
        directory, if no configuration exists there yet.
        """
        if os.path.isfile(self.configpath):
            return False

        config = ConfigObj(__default_sam_config__.splitlines())
        config.filename = self.configpath
        if not os.path.isdir(self.configdir):
            os.makedirs(self.configdir)
        config.write()
        return True


__default_sam_config__ = '''# This is the default SAM client config file.
# You should probably edit it to match the SAM
# bridge settings of your I2P router.

[sam]

# Address of the SAM bridge. The I2P_SAM_ADDRESS
# environment variable, in host:port form, takes
# precedence over these values.

host = 127.0.0.1
port = 7656


# The range of SAM protocol versions to negotiate.

min_version = 3.1
max_version = 3.3


# Signature type for transient destinations. The
# default of 7 selects EdDSA-SHA512-Ed25519.

# signature_type = 7


# Credentials, if authentication is enabled on
# the SAM bridge.

# user = samuser
# password = sampassword


# Socket timeout in seconds for connections to the
# bridge. No timeout is applied if unset.

# timeout = 30


[logging]

# Valid log levels are 0 through 7:
#   0: Log only critical information
#   1: Log errors and lower log levels
#   2: Log warnings and lower log levels
#   3: Log notices and lower (this is the default)
#   4: Log info and lower log levels
#   5: Verbose logging
#   6: Debug logging
#   7: Extreme logging

loglevel = 3
'''
