"""Pure layer logic: path models, canonical headers, digests."""
