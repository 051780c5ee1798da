"""
Asset Sync Services

2-layer client architecture:
1. Asset Service - Transactional read-repair against the asset store
2. Resilience Service - Fallback cache, offline detection, health probe, preload
"""
