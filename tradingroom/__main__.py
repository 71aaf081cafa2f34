from __future__ import annotations

import uvicorn

from tradingroom.config import settings_from_env


def main() -> None:
    s = settings_from_env()
    uvicorn.run("tradingroom.main:app", host=s.host, port=s.port)


if __name__ == "__main__":
    main()
