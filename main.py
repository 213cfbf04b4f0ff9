"""
Dayboard — Entry Point.

`python main.py` (or `python main.py bot`) starts the Telegram bot;
`python main.py api` serves the HTTP API with uvicorn.
"""

import logging
import sys

from dayboard.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

if __name__ == "__main__":
    mode = sys.argv[1] if len(sys.argv) > 1 else "bot"
    if mode == "api":
        from dayboard.api.app import run
        run()
    elif mode == "bot":
        from dayboard.bot.telegram_bot import main
        main()
    else:
        print(f"Unknown mode {mode!r}; use 'bot' or 'api'", file=sys.stderr)
        sys.exit(2)
