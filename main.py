import uvicorn

from iptgram.config import Config

if __name__ == "__main__":
    config = Config()
    uvicorn.run("iptgram.main:app", host="0.0.0.0", port=config.PORT, reload=config.DEBUG)
