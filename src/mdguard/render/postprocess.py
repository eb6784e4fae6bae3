"""DOM-level touch-ups applied to sanitized output."""

from __future__ import annotations

from bs4 import BeautifulSoup


def add_table_class(html: str, class_name: str = "table") -> str:
    """Append ``class_name`` to the class list of every <table>."""
    if "<table" not in html:
        return html
    soup = BeautifulSoup(html, "html.parser")
    for table in soup.find_all("table"):
        classes = list(table.get("class") or [])
        if class_name not in classes:
            classes.append(class_name)
        table["class"] = classes
    return str(soup)
