"""
Pairwise-ranking matrix factorization for implicit feedback.

Modules are grouped into data ingestion, model definitions (parameter store,
losses, the BPR trainer), training pipelines, and small utilities.
"""
