"""
=============================================================================
STATIC FILE SERVER - COMMAND LINE INTERFACE
=============================================================================

    static-file-server                  serve, configured from the environment
    static-file-server help             print the help text
    static-file-server version          print the version

    python -m staticserver [ help | version ]

Any argument CONTAINING "help" or "version" counts, so "-help",
"--help" and "--version" all work. Anything else is an error.

=============================================================================
EXIT STATUS
=============================================================================

    0   help / version printed
    1   unknown argument, invalid configuration, or the server could not
        start (address in use, unreadable TLS files, ...)

=============================================================================
"""

import logging
import os
import sys
from typing import Mapping, Optional, Sequence

from . import __version__
from .config import ServerConfig, ConfigError
from .handlers import build_handler
from .server import HTTPServer, setup_logging


logger = logging.getLogger("staticserver")


HELP = """
NAME
    static-file-server

SYNOPSIS
    static-file-server
    static-file-server [ help | -help | --help ]
    static-file-server [ version | -version | --version ]

DESCRIPTION
    The Static File Server is intended to be a tiny, fast and simple solution
    for serving files over HTTP. The features included are limited to binding
    to a host name and port, selecting a folder to serve, choosing a URL path
    prefix and selecting TLS certificates. If you want reverse proxy features,
    put it behind Nginx.

DEPENDENCIES
    Python 3.9+ and its standard library.

ENVIRONMENT VARIABLES
    FOLDER
        The path to the folder containing the contents to be served over
        HTTP(s). If not supplied, defaults to '/web' (for Docker reasons).
    HOST
        The hostname used for binding. If not supplied, contents will be served
        to a client without regard for the hostname.
    PORT
        The port used for binding. If not supplied, defaults to port '8080'.
    SHOW_LISTING
        Automatically serve the index file for the directory if requested. For
        example, if the client requests 'http://127.0.0.1/' the 'index.html'
        file in the root of the directory being served is returned. If the value
        is set to 'false', the same request will return a 'NOT FOUND'. Default
        value is 'true'.
    TLS_CERT
        Path to the TLS certificate file to serve files using HTTPS. If supplied
        then TLS_KEY must also be supplied. If not supplied, contents will be
        served via HTTP.
    TLS_KEY
        Path to the TLS key file to serve files using HTTPS. If supplied then
        TLS_CERT must also be supplied. If not supplied, contents will be served
        via HTTP.
    URL_PREFIX
        The prefix to use in the URL path. If supplied, then the prefix must
        start with a forward-slash and NOT end with a forward-slash. If not
        supplied then no prefix is used.
    LOG_LEVEL
        One of DEBUG, INFO, WARNING, ERROR or CRITICAL. Access log lines are
        written at INFO. Default value is 'INFO'.

USAGE
    FILE LAYOUT
       /var/www/sub/my.file
       /var/www/index.html

    COMMAND
        export FOLDER=/var/www/sub
        static-file-server
            Retrieve with: wget http://localhost:8080/my.file
                           wget http://my.machine:8080/my.file

        export FOLDER=/var/www
        export HOST=my.machine
        export PORT=80
        static-file-server
            Retrieve with: wget http://my.machine/sub/my.file

        export FOLDER=/var/www/sub
        export HOST=my.machine
        export PORT=80
        export URL_PREFIX=/my/stuff
        static-file-server
            Retrieve with: wget http://my.machine/my/stuff/my.file

        export FOLDER=/var/www/sub
        export TLS_CERT=/etc/server/my.machine.crt
        export TLS_KEY=/etc/server/my.machine.key
        static-file-server
            Retrieve with: wget https://my.machine:8080/my.file

        export FOLDER=/var/www/sub
        export PORT=443
        export TLS_CERT=/etc/server/my.machine.crt
        export TLS_KEY=/etc/server/my.machine.key
        static-file-server
            Retrieve with: wget https://my.machine/my.file

        export FOLDER=/var/www
        export PORT=80
        export SHOW_LISTING=true  # Default behavior
        static-file-server
            Retrieve 'index.html' with: wget http://my.machine/

        export FOLDER=/var/www
        export PORT=80
        export SHOW_LISTING=false
        static-file-server
            Returns 'NOT FOUND': wget http://my.machine/
"""


def _program_name(argv0: str) -> str:
    """How the user invoked us, for the usage hint."""
    if os.path.basename(argv0) == "__main__.py":
        return "python -m staticserver"
    return argv0


def main(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    """
    Run the CLI.

    Args:
        argv: Full argument vector including the program name.
              Defaults to sys.argv.
        environ: Environment to configure from. Defaults to os.environ.

    Returns:
        The process exit status.
    """
    if argv is None:
        argv = sys.argv
    if environ is None:
        environ = os.environ

    if len(argv) > 1:
        arg = argv[1]
        if "help" in arg:
            print(HELP)
            return 0
        if "version" in arg:
            print(f"Version {__version__}")
            return 0
        print(f"Unknown argument: {arg}. Try '{_program_name(argv[0])} help'.", file=sys.stderr)
        return 1

    setup_logging(environ.get("LOG_LEVEL") or "INFO")

    try:
        config = ServerConfig.from_env(environ)
        server = HTTPServer(config, build_handler(config))
        server.run()
    except (ConfigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")

    return 0


if __name__ == "__main__":
    sys.exit(main())
