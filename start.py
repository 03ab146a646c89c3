#!/usr/bin/env python3
"""
Development server runner for Pillbox
Runs the application in development mode with debug and reload enabled
"""
import os
import sys
import subprocess
from pathlib import Path


def check_virtual_environment():
    """Check if running in virtual environment"""
    in_venv = hasattr(sys, 'base_prefix') and sys.base_prefix != sys.prefix

    if not in_venv:
        print("⚠️  Not running in a virtual environment!")
        venv_path = Path(__file__).parent / 'venv'

        if not venv_path.exists():
            print("Creating virtual environment...")
            subprocess.check_call([sys.executable, '-m', 'venv', str(venv_path)])
            print(f"✓ Virtual environment created at: {venv_path}")

        if os.name == 'nt':
            venv_python = venv_path / 'Scripts' / 'python.exe'
        else:
            venv_python = venv_path / 'bin' / 'python'

        print("🔄 Restarting with virtual environment...\n")
        os.execv(str(venv_python), [str(venv_python)] + sys.argv)

    return True


def install_dependencies():
    """Install the project and its dependencies in editable mode"""
    base_dir = Path(__file__).parent

    print("📦 Checking dependencies...")

    try:
        subprocess.check_call([
            sys.executable, '-m', 'pip', 'install', '-q', '-e', str(base_dir)
        ])
        print("✓ All dependencies installed")
    except subprocess.CalledProcessError as e:
        print(f"❌ Failed to install dependencies: {e}")
        sys.exit(1)


def load_environment():
    """Load environment variables from .env"""
    env_file = Path(__file__).parent / '.env'

    if env_file.exists():
        from dotenv import load_dotenv
        load_dotenv(env_file)
        print("✓ Environment variables loaded from .env")
    else:
        print("ℹ️  No .env file found (using defaults)")

    if not os.environ.get('FLASK_APP'):
        os.environ['FLASK_APP'] = 'pillbox:create_app()'


def initialize_app():
    """Create the Pillbox app and its SQLite instance folder"""
    print("\n📦 Initializing application...")

    # SQLite database lives in instance/
    instance_dir = Path(__file__).parent / 'instance'
    instance_dir.mkdir(exist_ok=True)

    from pillbox import create_app

    app = create_app()
    print("✓ Application initialized")

    return app


def run_development_server(app):
    """Run Flask development server with debug and reload"""
    port = int(os.environ.get('PORT', 7878))
    host = os.environ.get('HOST', '0.0.0.0')

    print("\n" + "=" * 60)
    print("🚀 Starting Pillbox Development Server")
    print("=" * 60)
    print(f"Host: {host}")
    print(f"Port: {port}")
    print(f"Access URL: http://localhost:{port}/api")
    print("=" * 60 + "\n")

    try:
        app.run(host=host, port=port, debug=True, use_reloader=True)
    except KeyboardInterrupt:
        print("\n\n👋 Server stopped by user")
        sys.exit(0)


def main():
    """Main entry point"""
    print("\n🔧 Pillbox Development Setup\n")

    try:
        check_virtual_environment()
        install_dependencies()
        load_environment()
        app = initialize_app()
        run_development_server(app)
    except KeyboardInterrupt:
        print("\n\n👋 Setup interrupted by user")
        sys.exit(0)


if __name__ == '__main__':
    main()
