"""
docker-proper - Garbage collector for old Docker containers and images.
"""

__version__ = "1.0.0"
__author__ = "docker-proper"
__description__ = "Removes expired Docker containers and unused images"
