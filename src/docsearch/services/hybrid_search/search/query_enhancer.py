"""
Query enhancement for hybrid search.

Turns raw query text into an EnhancedQuery: cleaned tokens, stems,
synonym expansion, intent, entities and the ordered concept list used
for the semantic branch. Intent comes from local pattern rules first and
the concept-extraction collaborator second; the collaborator never makes
a query fail.
"""

import re
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from ....shared import get_logger, get_settings
from ..extraction import ConceptExtractor, ExtractionResult, NullConceptExtractor, extract_with_timeout
from ..indexing.tokenizer import STOPWORDS, clean_query, concept_key, stem, tokenize
from ..models import EnhancedQuery, Intent
from .personalization import PersonalizationLayer


def _rules(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Ordered: the first matching rule decides the intent
INTENT_RULES: Tuple[Tuple[Intent, Tuple[Pattern, ...]], ...] = (
    (Intent.TASK, _rules(
        r'创建任务|添加任务|新建任务|任务规划',
        r'查看任务|任务列表|我的任务|待办事项',
        r'完成任务|更新任务|任务进度',
        r'\b(create|add|new|view|complete|update) tasks?\b',
        r'\b(my tasks|task list|to ?do|todos?)\b',
    )),
    (Intent.DOCUMENT, _rules(
        r'分析文档|文档分析|解读文件',
        r'文档总结|内容摘要|提取要点',
        r'文档搜索|查找文档|搜索资料',
        r'\b(analy[sz]e|summari[sz]e|summary of) (the |this |a )?(document|doc|file|report)s?\b',
        r'\b(key points|extract points)\b',
    )),
    (Intent.SEARCH, _rules(
        r'搜索|查找|寻找',
        r'相关资料|相关文档|参考资料',
        r'\b(search|find|look ?up|looking for)\b',
        r'\b(related|reference) (material|documents?|docs)\b',
    )),
    (Intent.SCHEDULE, _rules(
        r'日程|会议|安排|计划',
        r'今天|明天|下周|时间表',
        r'添加事件|创建会议|安排时间',
        r'\b(schedule|meetings?|calendar|agenda|appointment)\b',
        r'\b(today|tomorrow|next week)\b',
    )),
    (Intent.CONVERSATION, _rules(
        r'人工智能|机器学习|深度学习',
        r'帮我|协助|建议|推荐',
        r'解释|说明|评价',
        r'\b(ai|artificial intelligence|machine learning|deep learning)\b',
        r'\b(help me|assist|suggest|recommend|explain)\b',
    )),
    (Intent.FILE, _rules(
        r'保存|下载|导出',
        r'上传|发送文件|文件处理',
        r'\b(save|download|export|upload)\b',
    )),
)


# Static synonym table, looked up by stem
SYNONYMS: Dict[str, Tuple[str, ...]] = {
    'budget': ('finance', 'cost'),
    'report': ('summary',),
    'finance': ('budget', 'accounting'),
    'revenue': ('income', 'sales'),
    'cost': ('expense', 'spending'),
    'expense': ('cost',),
    'forecast': ('projection',),
    'contract': ('agreement',),
    'agreement': ('contract',),
    'meeting': ('minutes', 'agenda'),
    'minutes': ('meeting',),
    'plan': ('roadmap', 'strategy'),
    'roadmap': ('plan',),
    'strategy': ('plan',),
    'policy': ('guideline', 'rule'),
    'guideline': ('policy',),
    'proposal': ('plan',),
    'invoice': ('bill', 'payment'),
    'payment': ('invoice',),
    'employee': ('staff', 'personnel'),
    'staff': ('employee',),
    'hiring': ('recruitment',),
    'recruitment': ('hiring',),
    'customer': ('client',),
    'client': ('customer',),
    'presentation': ('slides', 'deck'),
    'specification': ('spec', 'requirements'),
    'manual': ('guide', 'handbook'),
    'guide': ('manual',),
}

_SYNONYMS_BY_STEM: Dict[str, Tuple[str, ...]] = {
    stem(word): tuple(s.lower() for s in synonyms) for word, synonyms in SYNONYMS.items()
}


def classify_intent_by_rules(text: str) -> Optional[Intent]:
    """Fast-path intent classification; None when no rule matches."""
    if not text:
        return None
    for intent, patterns in INTENT_RULES:
        for pattern in patterns:
            if pattern.search(text):
                return intent
    return None


def synonyms_for(token: str) -> Tuple[str, ...]:
    return _SYNONYMS_BY_STEM.get(stem(token), ())


def _dedupe(items: Sequence[str]) -> Tuple[str, ...]:
    seen = set()
    ordered = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            ordered.append(item)
    return tuple(ordered)


class QueryEnhancer:
    """
    Builds EnhancedQuery objects.

    Steps:
    - Clean, tokenize and stem the raw text
    - Classify intent (rules, then the collaborator, then `general`)
    - Extract entities through the collaborator (empty on failure)
    - Expand stems with the synonym table and entity names
    - Optionally attach the user's frequent history terms
    """

    def __init__(self,
                 concept_extractor: Optional[ConceptExtractor] = None,
                 personalization: Optional[PersonalizationLayer] = None,
                 extraction_timeout: Optional[float] = None,
                 personal_terms_limit: Optional[int] = None):
        settings = get_settings()
        self.logger = get_logger(__name__)
        self.concept_extractor = concept_extractor or NullConceptExtractor()
        self.personalization = personalization
        self.extraction_timeout = (
            settings.concept_extraction_timeout if extraction_timeout is None else extraction_timeout
        )
        self.personal_terms_limit = (
            settings.personal_terms_limit if personal_terms_limit is None else personal_terms_limit
        )

        self.logger.info(
            f"Query enhancer initialized (extractor={type(self.concept_extractor).__name__}, "
            f"timeout={self.extraction_timeout}s)"
        )

    async def enhance(self,
                      raw_query: str,
                      user_id: Optional[str] = None,
                      personalize: bool = True) -> EnhancedQuery:
        """
        Enhance a raw query.

        Args:
            raw_query: Query text as typed by the user
            user_id: Caller, used for the personalization hook
            personalize: Whether to attach frequent history terms

        Returns:
            Immutable EnhancedQuery; never raises for collaborator failures
        """
        cleaned = clean_query(raw_query)
        tokens = self._content_tokens(tokenize(cleaned))
        stems = tuple(stem(token) for token in tokens)

        rule_intent = classify_intent_by_rules(cleaned)

        if cleaned:
            extraction = await extract_with_timeout(self.concept_extractor, cleaned, self.extraction_timeout)
        else:
            extraction = ExtractionResult.failure("empty query text")

        intent = rule_intent or extraction.intent_or(Intent.GENERAL)
        entities = frozenset(extraction.entities_or_empty())

        synonym_terms: List[str] = []
        concepts: List[str] = []
        for token in tokens:
            concepts.append(concept_key(token))
            for synonym in synonyms_for(token):
                synonym_terms.append(synonym)
                concepts.append(concept_key(synonym))

        entity_names = [entity.name.lower() for entity in entities]
        concepts.extend(concept_key(name) for name in sorted(entity_names))

        expanded = {concept_key(term) for term in (*stems, *synonym_terms, *entity_names)}
        expanded.discard('')

        personal_terms: Tuple[str, ...] = ()
        if personalize and user_id:
            personal_terms = self._personal_terms(user_id, stems)

        query = EnhancedQuery(
            original=raw_query,
            cleaned=cleaned,
            cleaned_tokens=tuple(tokens),
            stems=stems,
            expanded_terms=frozenset(expanded),
            intent=intent,
            entities=entities,
            concepts=_dedupe(concepts),
            personal_terms=personal_terms,
            extraction_error=extraction.error,
        )
        self.logger.debug(f"Enhanced query: {query.summary()}")
        return query

    @staticmethod
    def _content_tokens(tokens: List[str]) -> List[str]:
        """Drop stopwords, unless that would leave nothing."""
        content = [token for token in tokens if token not in STOPWORDS]
        return content or tokens

    def _personal_terms(self, user_id: str, stems: Sequence[str]) -> Tuple[str, ...]:
        if self.personalization is None or self.personal_terms_limit <= 0:
            return ()
        try:
            if not self.personalization.has_history(user_id):
                return ()
            terms = self.personalization.frequent_terms(
                user_id, limit=self.personal_terms_limit, exclude=stems
            )
        except Exception as e:
            self.logger.warning(f"Skipping personalization for user {user_id}: {e}")
            return ()
        return tuple(terms)
