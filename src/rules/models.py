from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PatternTypeCode = Literal["W", "R"]
ProcessMatchesCode = Literal[
    "noProcessing",
    "urlEncode",
    "urlDecode",
    "doubleUrlDecode",
    "base64decode",
]


class LoopGuardRules(BaseModel):
    window_seconds: float = Field(3.0, gt=0)
    threshold: int = Field(3, ge=1)

class StaticRulesRules(BaseModel):
    enabled: bool = True
    priority: int = Field(1, ge=1)

class LoggingRules(BaseModel):
    enabled: bool = False
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

class EngineRules(BaseModel):
    enabled: bool = True
    seed_example_rule: bool = True
    loop_guard: LoopGuardRules = Field(default_factory=LoopGuardRules)
    static_rules: StaticRulesRules = Field(default_factory=StaticRulesRules)
    logging: LoggingRules = Field(default_factory=LoggingRules)


class RuleRecord(BaseModel):
    """One user-authored redirect, as stored or exported by the extension."""

    description: str = ""
    example_url: str = Field("", alias="exampleUrl")
    example_result: str = Field("", alias="exampleResult")
    error: str | None = None
    include_pattern: str = Field(alias="includePattern")
    exclude_pattern: str = Field("", alias="excludePattern")
    pattern_desc: str = Field("", alias="patternDesc")
    redirect_url: str = Field(alias="redirectUrl")
    pattern_type: PatternTypeCode = Field("W", alias="patternType")
    process_matches: ProcessMatchesCode = Field("noProcessing", alias="processMatches")
    disabled: bool = False
    grouped: bool = False
    applies_to: list[str] = Field(default_factory=lambda: ["main_frame"], alias="appliesTo")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_record(self) -> dict:
        """Dump back to the camel-case storage shape."""
        return self.model_dump(by_alias=True)


EXAMPLE_RULE = {
    "description": "Example redirect, try going to http://example.com/anywordhere",
    "exampleUrl": "http://example.com/some-word-that-matches-wildcard",
    "exampleResult": "https://google.com/search?q=some-word-that-matches-wildcard",
    "error": None,
    "includePattern": "http://example.com/*",
    "excludePattern": "",
    "patternDesc": "Any word after example.com leads to google search for that word.",
    "redirectUrl": "https://google.com/search?q=$1",
    "patternType": "W",
    "processMatches": "noProcessing",
    "disabled": False,
    "appliesTo": ["main_frame"],
}
