"""Allow ``python -m acmetxt``."""

from acmetxt.cli.main import main

main()
