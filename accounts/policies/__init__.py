"""
Authorization Policies

Policy classes decide which farms a user may see and edit.
"""

from .base_policy import BasePolicy
from .farm_policy import FarmPolicy

__all__ = ['BasePolicy', 'FarmPolicy']
