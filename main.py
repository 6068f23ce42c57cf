# main.py
from mm_eval.app.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
