"""
lanshare: Lightweight local-network file sharing server
Built with FastAPI + Uvicorn + Jinja2
"""

__version__ = "1.0.0"
__author__ = "lanshare"
__description__ = "Browse and download files from a shared directory over HTTP"
