#!/usr/bin/env python
"""Script to run the Task Tracker API server."""
import os
import sys
from pathlib import Path

# Make the tasktracker package importable when run from anywhere
project_dir = Path(__file__).resolve().parent
sys.path.insert(0, str(project_dir))
os.chdir(project_dir)

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "tasktracker.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
