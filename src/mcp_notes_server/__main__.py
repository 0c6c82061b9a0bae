import sys

from mcp_notes_server.main import main

sys.exit(main())
