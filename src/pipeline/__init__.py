"""Declaration and execution of per-handler security enhancers."""
