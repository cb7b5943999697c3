"""Official bundle descriptors shipped with bundlestack."""
