"""
StuntBase Search

Conversational talent search for stunt performers.

Pipeline:
1. Interpret the request into a closed-vocabulary ParsedQuery
2. Retrieve tolerant, ranked candidates from the profile store
3. Compose a shortlist that references real candidate ids

Usage:
    from stuntbase.common import load_config
    from stuntbase.search import build_pipeline

    pipeline = build_pipeline(load_config())
    result = await pipeline.run("I need a 5'8 martial artist in Atlanta")
"""

__version__ = "0.1.0"
