"""Allow running apm with `python -m apm`."""

from apm.tool.apm import main

main()
