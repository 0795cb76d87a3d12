"""
Role-based access control and tenant isolation for the pathology lab platform.
"""

import os

__version__ = "0.1.0"

ROOT_DIRECTORY = os.path.dirname(os.path.abspath(__file__))
