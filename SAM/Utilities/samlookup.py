#!/usr/bin/env python3

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

import sys
import argparse

import SAM
from SAM._version import __version__

def program_setup(configdir, names, verbosity=0, quietness=0, sam_address=None, full_destination=False):
    try:
        config = SAM.Config(configdir=configdir, apply_logging=True)
        if sam_address != None:
            config.host, config.port = SAM.Config.address_from_string(sam_address)
    except ValueError as e:
        print("Invalid configuration: "+str(e))
        return 2

    SAM.loglevel = max(0, min(7, SAM.loglevel+verbosity-quietness))

    try:
        connection = config.connect()
    except SAM.SAMException as e:
        print("Could not connect to SAM bridge at "+str(config.host)+":"+str(config.port)+": "+str(e))
        return 2

    failed = False
    with connection:
        for name in names:
            try:
                if full_destination:
                    result = SAM.NamingResolver.lookup_destination(connection, name)
                else:
                    result = SAM.NamingResolver.lookup(connection, name)

                if len(names) > 1:
                    print(name+" "+str(result))
                else:
                    print(str(result))

            except SAM.NameNotFound:
                print("Could not resolve "+name)
                failed = True

            except (SAM.ProtocolError, SAM.BadAddressEncoding) as e:
                print("Lookup of "+name+" failed: "+str(e))
                failed = True

            except SAM.SAMException as e:
                # The connection is unusable after a transport failure
                print("Lookup of "+name+" failed: "+str(e))
                failed = True
                break

    return 1 if failed else 0

def main():
    try:
        parser = argparse.ArgumentParser(description="I2P name lookup via SAM")
        parser.add_argument("--config", action="store", default=None, help="path to alternative SAM client config directory", type=str)
        parser.add_argument("--sam", action="store", default=None, help="SAM bridge address as host:port", type=str)
        parser.add_argument("-b", "--base64", action="store_true", default=False, help="print the full base64 destination instead of the base32 address")
        parser.add_argument('-v', '--verbose', action='count', default=0)
        parser.add_argument('-q', '--quiet', action='count', default=0)
        parser.add_argument("--exampleconfig", action='store_true', default=False, help="print verbose configuration example to stdout and exit")
        parser.add_argument("--version", action="version", version="samlookup {version}".format(version=__version__))
        parser.add_argument("names", nargs="*", default=[], help="hostnames or base32 addresses to resolve", type=str)

        args = parser.parse_args()

        if args.exampleconfig:
            from SAM.Config import __default_sam_config__
            print(__default_sam_config__)
            sys.exit(0)

        if len(args.names) == 0:
            parser.print_help()
            sys.exit(1)

        sys.exit(program_setup(
            configdir = args.config,
            names = args.names,
            verbosity = args.verbose,
            quietness = args.quiet,
            sam_address = args.sam,
            full_destination = args.base64,
        ))

    except KeyboardInterrupt:
        print("")
        sys.exit(0)

if __name__ == "__main__":
    main()
