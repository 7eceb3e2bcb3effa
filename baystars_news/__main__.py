import sys

from baystars_news.cli import main

sys.exit(main())
