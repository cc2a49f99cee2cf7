"""API server entry point for python -m gooji.api"""
import uvicorn

from gooji.config import load_settings

if __name__ == "__main__":
    settings = load_settings()
    uvicorn.run(
        "gooji.api.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
