#!/usr/bin/env python3
"""
Know the Past Backend - Run Script
This script starts the FastAPI backend server
"""

import sys
import subprocess
from pathlib import Path


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

def check_file_exists(filepath, error_message):
    """Check if a file exists"""
    if not Path(filepath).exists():
        print_colored(f"❌ Error: {error_message}", "red")
        sys.exit(1)

def check_configuration() -> bool:
    """Validate credentials the same way the backend does at startup"""
    from knowthepast.core.config import Settings, validate_credentials
    from knowthepast.core.errors import ConfigurationError

    try:
        validate_credentials(Settings())
    except ConfigurationError as e:
        print_colored(f"❌ {str(e)}", "red")
        print("Please create a .env file in the project root with:")
        print("  GEMINI_API_KEY=your_gemini_key_here")
        print("  MAPS_API_KEY=your_google_maps_key_here")
        print("  LOGGER=20")
        return False
    return True

def main():
    print_colored("🚀 Starting Know the Past Backend...", "blue")

    # Check if we're in the backend directory
    check_file_exists("knowthepast/main.py", "knowthepast/main.py not found. Please run this script from the backend directory.")

    # Check if dependencies are installed
    print_colored("🔍 Checking dependencies...", "blue")
    try:
        import fastapi
        import uvicorn
    except ImportError:
        print_colored("❌ Dependencies not installed.", "red")
        print("Installing dependencies...")
        subprocess.run([sys.executable, "-m", "pip", "install", "-e", ".."], check=True)

    # Credentials may come from the environment or from a .env file
    if not check_configuration():
        sys.exit(1)

    # Start the server
    print_colored("✅ All checks passed!", "green")
    print_colored("🌐 Starting Uvicorn server...", "blue")
    print("📍 Backend will be available at: http://localhost:8000")
    print("📍 API Health check: http://localhost:8000/health")
    print("📍 API Documentation: http://localhost:8000/docs")
    print()
    print("Press Ctrl+C to stop the server")
    print()

    try:
        subprocess.run([
            sys.executable, "-m", "uvicorn",
            "knowthepast.main:app",
            "--reload",
            "--host", "0.0.0.0",
            "--port", "8000"
        ], check=True)
    except KeyboardInterrupt:
        print_colored("\n👋 Backend server stopped.", "yellow")
    except subprocess.CalledProcessError as e:
        print_colored(f"\n❌ Error starting server: {e}", "red")
        sys.exit(1)

if __name__ == "__main__":
    main()
