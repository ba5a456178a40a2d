import uvicorn

from sitebuilder import config


def run() -> None:
    uvicorn.run("sitebuilder.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
