from typing import List, Optional

from ..types.models import OperationSummary
from .openapi import ApiDocument


def search(document: ApiDocument, keyword: Optional[str] = None) -> List[OperationSummary]:
    """
    Поиск операций по ключевому слову.

    Без ключевого слова возвращает все операции в порядке объявления.
    Иначе оставляет операции, у которых слово (с учетом регистра, без
    пробелов по краям) входит в путь, summary или любой из тегов.
    """
    summaries = [operation.to_summary() for operation in document.operations]
    if keyword is None:
        return summaries

    keyword = keyword.strip()
    return [
        summary
        for summary in summaries
        if keyword in summary.path
        or keyword in summary.summary
        or any(keyword in tag for tag in summary.tags)
    ]
