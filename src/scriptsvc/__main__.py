"""python -m scriptsvc のエントリポイント。"""

from scriptsvc.cli import main

if __name__ == "__main__":
    main()
