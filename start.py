"""Entry point to run both the FastAPI backend and the reminder worker."""

import subprocess
import sys
import signal
import os
from pathlib import Path

# Load .env file FIRST before starting any subprocess
from dotenv import load_dotenv
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)
print(f"✅ Loaded environment from: {env_path}")


def main():
    print("=" * 50)
    print("Starting Planning Service")
    print("=" * 50)
    print()

    print("1. Starting FastAPI backend (port 8000)...")
    print("2. Starting reminder worker...")
    print()

    # The worker owns the sweep; the API process must not run a second loop
    env = os.environ.copy()
    env["SCHEDULER_ENABLED"] = "false"
    cwd = os.path.dirname(os.path.abspath(__file__))

    # Start FastAPI server
    api_process = subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "planning.main:app", "--host", "0.0.0.0", "--port", "8000"],
        cwd=cwd,
        env=env,
    )

    # Start reminder worker
    worker_process = subprocess.Popen(
        [sys.executable, "-m", "planning.worker"],
        cwd=cwd,
        env=os.environ.copy(),
    )

    print()
    print("=" * 50)
    print("Both services started!")
    print("- API: http://localhost:8000")
    print("- API Docs: http://localhost:8000/docs")
    print("- Reminder worker: sweeping")
    print("=" * 50)
    print()
    print("Press Ctrl+C to stop both services...")
    print()

    def signal_handler(sig, frame):
        print()
        print("Shutting down...")
        api_process.terminate()
        worker_process.terminate()
        api_process.wait()
        worker_process.wait()
        print("Services stopped.")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    # Wait for processes
    try:
        api_process.wait()
        worker_process.wait()
    except KeyboardInterrupt:
        signal_handler(None, None)


if __name__ == "__main__":
    main()
