"""Run the Chronoline API with uvicorn."""

import uvicorn

from chronoline.config import settings


def main() -> None:
    uvicorn.run(
        "chronoline.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    main()
