from __future__ import annotations

import sys
from pathlib import Path

from src.errors.api import BatchError
from src.jobcontroller.api import BatchConfig, print_fatal, run


def main() -> None:
    project_root = str(Path(__file__).resolve().parent)
    config = BatchConfig.for_project(project_root)

    try:
        run(config)
    except BatchError as e:
        print_fatal(e, config)
        sys.exit(1)
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
