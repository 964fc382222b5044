"""Click command groups registered by ``lpass_bridge.main``."""
