from __future__ import annotations

from typing import Mapping, Optional

from lxml import etree as LXML_ET

from .namespaces import namespace_table


class XPathAccessor:
    """XPath over one parsed document with every known prefix registered."""

    def __init__(self, document: LXML_ET._Element, namespaces: Optional[Mapping[str, str]] = None) -> None:
        self.document = document
        self.namespaces = namespace_table(namespaces)
        self._evaluator = LXML_ET.XPathEvaluator(document, namespaces=self.namespaces)

    def query(self, expression: str, context: Optional[LXML_ET._Element] = None, **variables: object) -> list:
        if context is None:
            result = self._evaluator(expression, **variables)
        else:
            result = context.xpath(expression, namespaces=self.namespaces, **variables)
        if isinstance(result, list):
            return result
        return [result]

    def first(self, expression: str, context: Optional[LXML_ET._Element] = None, **variables: object):
        matches = self.query(expression, context, **variables)
        return matches[0] if matches else None
