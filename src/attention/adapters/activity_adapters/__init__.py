from attention.adapters.activity_adapters.activity_hub import ActivityHub

__all__ = ["ActivityHub"]
