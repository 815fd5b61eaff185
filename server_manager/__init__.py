"""
Ubuntu Server Manager

A Nord-themed, menu-driven maintenance tool for Ubuntu servers: system
updates, unattended upgrades, user and SSH key provisioning, Docker and
Dockge management, Docker Compose fleet updates and Tailscale setup.
"""

APP_NAME: str = "Server Manager"
APP_SUBTITLE: str = "Ubuntu Server Maintenance"
VERSION: str = "1.0.0"

__version__ = VERSION
