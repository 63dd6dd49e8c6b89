"""azmove - Azure VM availability zone migration CLI

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- Safety first (vault backup before any destructive step)
- Fail fast with helpful guidance

azmove relocates a single Azure VM into a target availability zone by
snapshotting its disks, recreating them in the zone, and recreating the VM
with the same name, size, tags and network interface.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
