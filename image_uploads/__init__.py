"""Image uploads service: upload, serve and list images kept in a blob store."""
