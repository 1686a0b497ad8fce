"""Run the relay with uvicorn: python -m relay"""
import uvicorn

from relay.config import RelayConfig


def main():
    config = RelayConfig.from_env()
    uvicorn.run("relay.app:app", host="0.0.0.0", port=config.port)


if __name__ == "__main__":
    main()
