"""Lexical retrieval: pluggable chunk scoring and deterministic ranking"""
import logging
import math
import re
from typing import Dict, List, Optional, Sequence, Tuple, Type

from rank_bm25 import BM25Plus

from config import settings
from core.domain import ChunkSearchResult, Document, DocumentChunk
from core.interfaces import IScoringStrategy

logger = logging.getLogger(settings.LOGGER_NAME)

_WORD_RE = re.compile(r"[\w']+")

MIN_TERM_LENGTH = 3
TERM_WEIGHT = 10.0
PHRASE_BONUS = 50.0


def tokenize(text: str) -> List[str]:
    """Lowercased word tokens"""
    return _WORD_RE.findall(text.lower())


def query_terms(query: str) -> List[str]:
    """
    Distinct query terms in order of appearance.

    Very short words are dropped unless nothing else is left.
    """
    tokens = tokenize(query)
    terms = [t for t in tokens if len(t) >= MIN_TERM_LENGTH] or tokens
    return list(dict.fromkeys(terms))


class KeywordScoring(IScoringStrategy):
    """
    Frequency-weighted term matching.

    Each query term adds log(1 + n) * 10, where n is the number of chunk words
    containing the term. A chunk containing the whole query phrase gets a
    flat bonus on top.
    """

    name = "keyword"

    def score(self, query: str, chunks: Sequence[DocumentChunk]) -> List[float]:
        terms = query_terms(query)
        if not terms:
            return [0.0] * len(chunks)
        phrase = " ".join(terms)
        return [self._score_chunk(terms, phrase, chunk.text) for chunk in chunks]

    @staticmethod
    def _score_chunk(terms: List[str], phrase: str, text: str) -> float:
        words = tokenize(text)
        score = 0.0
        for term in terms:
            occurrences = sum(1 for word in words if term in word)
            if occurrences:
                score += math.log(1 + occurrences) * TERM_WEIGHT

        if len(terms) > 1 and phrase in " ".join(words):
            score += PHRASE_BONUS
        return score


class BM25Scoring(IScoringStrategy):
    """
    BM25+ over the candidate chunk set.

    BM25+ keeps idf positive on small corpora; chunks sharing no term with
    the query score 0 so the relevance floor still applies.
    """

    name = "bm25"

    def score(self, query: str, chunks: Sequence[DocumentChunk]) -> List[float]:
        terms = query_terms(query)
        if not chunks or not terms:
            return [0.0] * len(chunks)

        corpus = [tokenize(chunk.text) or [""] for chunk in chunks]
        bm25 = BM25Plus(corpus)
        scores = bm25.get_scores(terms)

        wanted = set(terms)
        return [
            float(score) if wanted.intersection(tokens) else 0.0
            for tokens, score in zip(corpus, scores)
        ]


SCORING_STRATEGIES: Dict[str, Type[IScoringStrategy]] = {
    KeywordScoring.name: KeywordScoring,
    BM25Scoring.name: BM25Scoring,
}


def build_scoring_strategy(name: str) -> IScoringStrategy:
    strategy_class = SCORING_STRATEGIES.get(name.lower())
    if not strategy_class:
        available = ", ".join(SCORING_STRATEGIES.keys())
        raise ValueError(f"Unknown scoring strategy: '{name}'. Available: {available}")
    return strategy_class()


class LexicalRetriever:
    """
    Scores chunks against a query and returns the top-K.

    Ordering is score descending, then document ingestion order, then chunk
    position, so identical inputs always give identical rankings.
    """

    def __init__(self, strategy: IScoringStrategy, min_score: Optional[float] = None):
        self.strategy = strategy
        self.min_score = settings.MIN_RELEVANCE_SCORE if min_score is None else min_score

    def search(
        self,
        query: str,
        documents: Sequence[Document],
        top_k: int = 3,
        document_ids: Optional[Sequence[str]] = None
    ) -> List[ChunkSearchResult]:
        if top_k < 1:
            raise ValueError("top_k must be at least 1")

        allowed = set(document_ids) if document_ids is not None else None

        candidates: List[Tuple[int, Document, DocumentChunk]] = []
        for doc_index, document in enumerate(documents):
            if allowed is not None and document.id not in allowed:
                continue
            for chunk in document.chunks:
                candidates.append((doc_index, document, chunk))

        if not candidates:
            return []

        scores = self.strategy.score(query, [chunk for _, _, chunk in candidates])

        ranked = sorted(
            (
                (score, doc_index, chunk.position, document, chunk)
                for (doc_index, document, chunk), score in zip(candidates, scores)
                if score > self.min_score
            ),
            key=lambda item: (-item[0], item[1], item[2]),
        )

        results = [
            ChunkSearchResult(document=document, chunk=chunk, score=score)
            for score, _, _, document, chunk in ranked[:top_k]
        ]
        logger.debug(
            f"[{self.strategy.name}] scored {len(candidates)} chunks, "
            f"{len(ranked)} above floor, returning {len(results)}"
        )
        return results
