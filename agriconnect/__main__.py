import uvicorn

from agriconnect.core.config import settings


def main() -> None:
    uvicorn.run('agriconnect.main:app', host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == '__main__':
    main()
