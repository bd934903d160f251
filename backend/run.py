import sys
from pathlib import Path

# Ensure the persona_engine package is importable when run from a checkout
current_dir = Path(__file__).parent
sys.path.insert(0, str(current_dir))

from persona_engine.main import main  # noqa: E402

if __name__ == "__main__":
    main()
