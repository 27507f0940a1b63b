# Development server for caffeine using the in-memory storage backend
from caffeine_lib.config import ServerConfig
from caffeine_lib.main import create_app
app = create_app(ServerConfig(storage_backend='memory', broker_enabled=True, log_level='DEBUG'))
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
