#!/usr/bin/env python3
"""
Property Search API
Starts the FastAPI application under uvicorn
"""

import os
import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    host = os.getenv("HOST", "0.0.0.0")

    print(f"Property Search API listening on http://{host}:{port}")
    print(f"OpenAPI docs at http://{host}:{port}/docs")

    uvicorn.run(
        "estate_search.main:app",
        host=host,
        port=port,
        reload=os.getenv("RELOAD", "false").lower() == "true",
        access_log=True,
    )
