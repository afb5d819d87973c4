import os
import shutil
import tempfile
import unittest
from unittest import mock

import SAM
from SAM.Config import Config
from SAM.Address import i2p_b64encode
from SAM.Connection import ControlConnection

from . import handshaken

DEST = i2p_b64encode(bytes(range(48)))

class TestConfig(unittest.TestCase):

    def setUp(self):
        self.configdir = tempfile.mkdtemp()
        self.saved_loglevel = SAM.loglevel
        SAM.loglevel = SAM.LOG_NONE

    def tearDown(self):
        SAM.loglevel = self.saved_loglevel
        shutil.rmtree(self.configdir)

    def write_config(self, text):
        with open(os.path.join(self.configdir, Config.CONFIG_FILENAME), "w") as f:
            f.write(text)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        config = Config(configdir=self.configdir)
        self.assertEqual(config.address, (ControlConnection.DEFAULT_HOST, ControlConnection.DEFAULT_PORT))
        self.assertEqual(config.min_version, "3.1")
        self.assertEqual(config.max_version, "3.3")
        self.assertIsNone(config.user)
        self.assertIsNone(config.timeout)
        self.assertIsNone(config.config)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_values_from_file(self):
        self.write_config("\n".join([
            "[sam]",
            "host = 10.0.0.2",
            "port = 7657",
            "min_version = 3.2",
            "signature_type = 1",
            "user = samuser",
            "password = sampassword",
            "timeout = 12.5",
            "[logging]",
            "loglevel = 12",
        ]))
        config = Config(configdir=self.configdir)
        self.assertEqual(config.address, ("10.0.0.2", 7657))
        self.assertEqual(config.min_version, "3.2")
        self.assertEqual(config.max_version, "3.3")
        self.assertEqual(config.signature_type, 1)
        self.assertEqual(config.user, "samuser")
        self.assertEqual(config.password, "sampassword")
        self.assertEqual(config.timeout, 12.5)
        self.assertEqual(config.loglevel, SAM.LOG_EXTREME)
        self.assertEqual(SAM.loglevel, SAM.LOG_NONE)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_apply_logging(self):
        self.write_config("[logging]\nloglevel = 5\n")
        Config(configdir=self.configdir, apply_logging=True)
        self.assertEqual(SAM.loglevel, SAM.LOG_VERBOSE)

    def test_environment_override(self):
        self.write_config("[sam]\nhost = 10.0.0.2\nport = 7657\n")
        with mock.patch.dict(os.environ, {Config.ENV_SAM_ADDRESS: "192.168.1.5:7700"}):
            config = Config(configdir=self.configdir)
        self.assertEqual(config.address, ("192.168.1.5", 7700))

    def test_address_from_string(self):
        self.assertEqual(Config.address_from_string("127.0.0.1:7656"), ("127.0.0.1", 7656))
        self.assertEqual(Config.address_from_string(" router.local:7656 "), ("router.local", 7656))
        self.assertEqual(Config.address_from_string("::1:7656"), ("::1", 7656))
        for bad in ["127.0.0.1", ":7656", "host:port", ""]:
            self.assertRaises(ValueError, Config.address_from_string, bad)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_write_default(self):
        configdir = os.path.join(self.configdir, "nested")
        config = Config(configdir=configdir)
        self.assertTrue(config.write_default())
        self.assertTrue(os.path.isfile(config.configpath))
        self.assertFalse(config.write_default())

        reloaded = Config(configdir=configdir)
        self.assertEqual(reloaded.address, ("127.0.0.1", 7656))
        self.assertEqual(reloaded.loglevel, SAM.LOG_NOTICE)
        self.assertIsNone(reloaded.signature_type)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_invalid_file(self):
        self.write_config("[sam\nhost = 1.2.3.4\n")
        self.assertRaises(ValueError, Config, configdir=self.configdir)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_create_session(self):
        self.write_config("[sam]\nsignature_type = 3\n")
        config = Config(configdir=self.configdir)
        connection, stream = handshaken([
            b"SESSION STATUS RESULT=OK DESTINATION="+DEST.encode()+b"\n",
            b"SESSION STATUS RESULT=DUPLICATED_ID\n",
        ])
        with mock.patch.object(Config, "connect", return_value=connection):
            session = config.create_session(SAM.Session.DATAGRAM, nickname="cfg")
            self.assertEqual(stream.written_lines(), ["SESSION CREATE STYLE=DATAGRAM ID=cfg DESTINATION=TRANSIENT SIGNATURE_TYPE=3"])
            self.assertIs(session.connection, connection)

            self.assertRaises(SAM.SessionCreateFailed, config.create_session, SAM.Session.DATAGRAM, nickname="cfg")
            self.assertTrue(stream.closed)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_connect_failure(self):
        self.write_config("[sam]\nhost = 127.0.0.1\nport = 1\ntimeout = 2\n")
        config = Config(configdir=self.configdir)
        self.assertRaises(SAM.TransportError, config.connect)

if __name__ == '__main__':
    unittest.main(verbosity=2)
