"""dynjobs 명령행 도구"""

__version__ = "0.1.0"
