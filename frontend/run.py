#!/usr/bin/env python3
"""
Know the Past Frontend - Run Script
This script starts the Streamlit frontend
"""

import os
import sys
import subprocess
from pathlib import Path

import requests

def print_colored(message, color="blue"):
    """Print colored output"""
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "reset": "\033[0m"
    }
    print(f"{colors.get(color, '')}{message}{colors['reset']}")

def check_http_endpoint(url):
    """Check if HTTP endpoint is accessible"""
    try:
        return requests.get(url, timeout=2).ok
    except requests.exceptions.RequestException:
        return False

def main():
    print_colored("🚀 Starting Know the Past Frontend...", "blue")

    if not Path("app.py").exists():
        print_colored("❌ Error: app.py not found. Please run this script from the frontend directory.", "red")
        sys.exit(1)

    if not os.environ.get("MAPS_API_KEY"):
        print_colored("❌ MAPS_API_KEY is not set. Export it before starting the frontend.", "red")
        sys.exit(1)

    # Check if backend is running
    print_colored("🔍 Checking backend connection...", "blue")
    backend_url = os.environ.get("BACKEND_URL", "http://localhost:8000")
    if not check_http_endpoint(f"{backend_url}/health"):
        print_colored(f"⚠️  Warning: Backend doesn't appear to be running at {backend_url}", "yellow")
        print("Please start the backend first:")
        print("  cd backend && python run.py")
        print()
        response = input("Continue anyway? (y/N): ").strip().lower()
        if response != 'y':
            sys.exit(1)

    print_colored("✅ All checks passed!", "green")
    print_colored("🌐 Starting Streamlit server...", "blue")
    print("📍 Frontend will be available at: http://localhost:8501")
    print()
    print("Press Ctrl+C to stop the server")
    print()

    try:
        subprocess.run([
            sys.executable, "-m", "streamlit",
            "run", "app.py"
        ], check=True)
    except KeyboardInterrupt:
        print_colored("\n👋 Frontend server stopped.", "yellow")
    except subprocess.CalledProcessError as e:
        print_colored(f"\n❌ Error starting server: {e}", "red")
        sys.exit(1)

if __name__ == "__main__":
    main()
