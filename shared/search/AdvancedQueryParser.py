"""Parser for the advanced search syntax.

Accepted input is a flat list of terms joined by AND / OR, where each term is
either a bare text or a ``field:value`` pair::

    title:report AND department:Engineering
    budget OR forecast OR author:"Jane Doe"

The first operator found decides how all terms are combined; mixing AND and
OR in one string is not disambiguated by precedence. A string that yields no
usable term is treated as one bare text term.
"""

import re
from dataclasses import dataclass
from typing import Literal, Union

# fields reachable through field:value, split by how they are matched
KEYWORD_FIELDS = frozenset({"author", "department", "tags", "file_type", "mime_type", "visibility", "language"})
TEXT_FIELDS = frozenset({"title", "content", "extracted_text", "folder_path", "search_text"})

TEXT_CLAUSE_FIELDS = ["title^3", "content^2", "extracted_text^1.5"]

_OPERATOR_PATTERN = re.compile(r"\s+(AND|OR)\s+", re.IGNORECASE)
_FIELD_PATTERN = re.compile(r"^(\w+):(.+)$", re.DOTALL)
_QUOTES = "'\""


@dataclass(frozen=True)
class TextClause:
    text: str


@dataclass(frozen=True)
class FieldClause:
    field: str
    value: str


@dataclass(frozen=True)
class BoolClause:
    operator: Literal["and", "or"]
    clauses: tuple["Clause", ...]


Clause = Union[TextClause, FieldClause, BoolClause]


class AdvancedQueryParser:
    """Turns an advanced query string into a clause tree and into a backend query."""

    def parse(self, query: str) -> Clause:
        """Parse an advanced query string.

        Args:
            query (str): The raw query string.

        Returns:
            Clause: A single clause for one term, else a BoolClause over all terms.
        """
        query = query.strip()
        parts = _OPERATOR_PATTERN.split(query)

        # re.split keeps the captured operators at the odd positions
        raw_terms = [part.strip() for part in parts[0::2]]
        operators = [part.lower() for part in parts[1::2]]

        terms = [term for term in raw_terms if term and term.lower() not in ("and", "or")]
        if not terms:
            return TextClause(text=query)

        clauses = tuple(self._parse_term(term) for term in terms)
        if len(clauses) == 1:
            return clauses[0]

        operator: Literal["and", "or"] = "or" if operators and operators[0] == "or" else "and"
        return BoolClause(operator=operator, clauses=clauses)

    def _parse_term(self, term: str) -> Clause:
        match = _FIELD_PATTERN.match(term)
        if match:
            field, value = match.group(1).lower(), match.group(2).strip().strip(_QUOTES).strip()
            if value and (field in KEYWORD_FIELDS or field in TEXT_FIELDS):
                return FieldClause(field=field, value=value)
        return TextClause(text=term.strip(_QUOTES) or term)

    ##########################################
    ############ QUERY RENDERING #############
    ##########################################

    def to_query(self, clause: Clause) -> dict:
        """Render a clause tree as a backend boolean query.

        Args:
            clause (Clause): The parsed clause tree.

        Returns:
            dict: The backend query document.
        """
        if isinstance(clause, BoolClause):
            occur = "should" if clause.operator == "or" else "must"
            rendered = {"bool": {occur: [self.to_query(c) for c in clause.clauses]}}
            if occur == "should":
                rendered["bool"]["minimum_should_match"] = 1
            return rendered
        if isinstance(clause, FieldClause):
            if clause.field in KEYWORD_FIELDS:
                return {"term": {clause.field: clause.value}}
            return {"match_phrase": {clause.field: clause.value}}
        return {"multi_match": {"query": clause.text, "fields": TEXT_CLAUSE_FIELDS}}

    def describe(self, clause: Clause) -> str:
        """Render a clause tree back into a readable normalized string."""
        if isinstance(clause, BoolClause):
            joiner = f" {clause.operator.upper()} "
            return joiner.join(self.describe(c) for c in clause.clauses)
        if isinstance(clause, FieldClause):
            return f"{clause.field}:{clause.value}"
        return clause.text
