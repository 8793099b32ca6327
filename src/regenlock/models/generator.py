"""Generator output models (what the external content generator returns)."""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class GeneratedItem(BaseModel):
    """A single generated slot before it is committed into a version set."""

    key: str = Field(..., description="Generator slot key")

    title: str = Field(default="", description="Human-readable label")

    text: str = Field(default="", description="Generated text for the slot")

    attributes: Dict[str, Any] = Field(
        default_factory=dict,
        description="Side data such as image_url, prompt or palette"
    )


class GeneratorOutput(BaseModel):
    """A batch of generated items returned by one generator call."""

    items: List[GeneratedItem] = Field(default_factory=list)

    warnings: List[str] = Field(
        default_factory=list,
        description="Generator warnings (e.g. dates missing)"
    )

    @classmethod
    def from_sections(cls, sections: Dict[str, str], titles: Dict[str, str] | None = None) -> "GeneratorOutput":
        """
        Build output for section-oriented tools (e.g. job posts).

        Args:
            sections: Mapping of section key to generated text, in display order
            titles: Optional mapping of section key to display title

        Returns:
            GeneratorOutput with one item per section
        """
        titles = titles or {}
        return cls(
            items=[
                GeneratedItem(key=key, title=titles.get(key, key), text=text or "")
                for key, text in sections.items()
            ]
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "GeneratorOutput":
        """
        Flatten a nested JSON response into one item per string leaf.

        Keys become dotted paths, list elements use their index:
        {"socialPosts": [{"headline": "..."}]} -> "socialPosts.0.headline".
        A top-level "warnings" list (or meta.warnings) is lifted into warnings.

        Args:
            payload: Parsed generator response

        Returns:
            GeneratorOutput with one item per string leaf
        """
        items: List[GeneratedItem] = []
        warnings: List[str] = []

        def walk(value: Any, path: str) -> None:
            if isinstance(value, str):
                items.append(GeneratedItem(key=path, title=path, text=value))
            elif isinstance(value, dict):
                for k, v in value.items():
                    walk(v, f"{path}.{k}" if path else str(k))
            elif isinstance(value, list):
                for i, v in enumerate(value):
                    walk(v, f"{path}.{i}" if path else str(i))

        for key, value in payload.items():
            if key == "meta" and isinstance(value, dict):
                warnings.extend(str(w) for w in value.get("warnings") or [])
                continue
            if key == "warnings" and isinstance(value, list):
                warnings.extend(str(w) for w in value)
                continue
            walk(value, key)

        return cls(items=items, warnings=warnings)
