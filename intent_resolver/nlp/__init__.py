"""NLP layer - Text understanding for travel requests.

- gazetteer: Known destinations, aliases, costs and profile tags
- lexical: Deterministic rule-based field extraction
- context: Enrichment of follow-up utterances from earlier turns
- learning: Similarity, keyword signatures and learned patterns
- predictive: History-independent defaults
- llm_fallback: Prompt, reply repair and plausibility filtering
"""

from .context import ContextEnricher, EnrichedUtterance
from .learning import PatternHints, apply_learned_patterns, extract_patterns, jaccard, keywords
from .lexical import LexicalExtractor
from .llm_fallback import LanguageModelFallback, PlausibilityFilter, build_prompt, parse_completion
from .predictive import Prediction, PredictiveCompleter

__all__ = [
    "ContextEnricher",
    "EnrichedUtterance",
    "LanguageModelFallback",
    "LexicalExtractor",
    "PatternHints",
    "PlausibilityFilter",
    "Prediction",
    "PredictiveCompleter",
    "apply_learned_patterns",
    "build_prompt",
    "extract_patterns",
    "jaccard",
    "keywords",
    "parse_completion",
]
