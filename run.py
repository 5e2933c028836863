"""Application entry point.

Runs the blog API with uvicorn for local development.
"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run("blogapi.main:app", host="localhost", port=8000, reload=True)
