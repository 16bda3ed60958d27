import sys

from torrent_bencode.cli import main

sys.exit(main())
