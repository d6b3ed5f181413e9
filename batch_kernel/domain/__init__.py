"""batch_kernel.domain -- Pure kernel value objects (zero I/O)."""
