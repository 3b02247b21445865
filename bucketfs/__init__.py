"""
bucketfs: an S3 bucket presented as a hierarchical filesystem
"""
