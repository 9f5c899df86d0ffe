"""TaskHub Engine — config, errors, logging, cache, concurrency and runtime."""
