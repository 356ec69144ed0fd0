"""
START PREV FEE ALLOCATION ENGINE
Deterministic fee distribution over INSS benefit releases
"""

from .models import AllocationInput, AllocationResult
from .processor import AllocationProcessor

__all__ = ['AllocationProcessor', 'AllocationInput', 'AllocationResult']
