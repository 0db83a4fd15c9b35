"""Entry point for running mailsieve as a module.

Usage:
    python -m mailsieve validate-config
    python -m mailsieve --help
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before any other imports that need env vars

from mailsieve.cli import main  # noqa: E402

if __name__ == "__main__":
    main()
