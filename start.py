# start.py
import uvicorn
import os

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8000")),
        reload=os.getenv("RELOAD", "0") == "1",
        workers=1,  # 连接表在进程内存里，多进程会导致推送丢失
        loop="asyncio",
        timeout_keep_alive=75,  # 增加到75秒，避免WebSocket频繁断开
        limit_concurrency=200,
        limit_max_requests=5000,
        backlog=2048,
        log_level=os.getenv("LOG_LEVEL", "info"),
    )


"""
启动命令
python start.py

SERVER_HOST / SERVER_PORT / LOG_LEVEL 通过环境变量覆盖
"""
