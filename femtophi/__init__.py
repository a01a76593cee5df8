"""QA of Phi candidates in femtoscopic derived data"""

__version__ = "0.1.0"
