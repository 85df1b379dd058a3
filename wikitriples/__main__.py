import sys

from wikitriples.cli import main

sys.exit(main())
