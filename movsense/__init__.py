"""MovSense inventory pipeline.

This package estimates moving-job inventory and cost from property photos.

Architecture:
- Phase 1: Room classification (one model call for all photos)
- Phase 2: Per-room furniture detection (one model call per room)
- Phase 3: Reconciliation, volume/weight fill and inventory validation
- Estimate calculator: labor hours, crew suggestion and price
"""

__version__ = "1.0.0"
