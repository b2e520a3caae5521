"""Package entry point for ``python -m scribe_relay``.

Delegates to the CLI's main(); ``--serve`` starts the HTTP API instead.
"""

import sys

if __name__ == "__main__":
    if "--serve" in sys.argv:
        from scribe_relay.server.app import run_api
        run_api()
    else:
        from scribe_relay.cli import main
        main()
