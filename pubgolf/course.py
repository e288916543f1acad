"""
The pub golf course: nine themed holes, their special rules and the
house rule catalogue used when handing out penalty and bonus points.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class SpecialRule(str, Enum):
    """Named hole modifiers. They change how a hole is played, not how it is scored."""

    STRIPS = "strips"
    CARPET = "gt"
    BEER_RELAY = "øl-staffet"
    SILENT = "ikke-snakke"
    QUIZ = "quiz"
    NO_HANDS = "no-hands"
    SPLIT_THE_G = "split-the-g"

    @property
    def label(self) -> str:
        return SPECIAL_RULE_LABELS[self]


SPECIAL_RULE_LABELS = {
    SpecialRule.SILENT: "Stum",
    SpecialRule.QUIZ: "Quiz",
    SpecialRule.STRIPS: "Strips",
    SpecialRule.CARPET: "Gulvtæppe",
    SpecialRule.BEER_RELAY: "Øl-staffet",
    SpecialRule.NO_HANDS: "No Hands",
    SpecialRule.SPLIT_THE_G: "Split the G",
}


@dataclass(frozen=True)
class Hole:
    number: int
    pub: str
    drink: str
    par: int
    special: Optional[SpecialRule] = None
    water_hazard: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "pub": self.pub,
            "drink": self.drink,
            "par": self.par,
            "special": self.special.value if self.special else None,
            "special_label": self.special.label if self.special else None,
            "water_hazard": self.water_hazard,
        }


HOLES: Tuple[Hole, ...] = (
    Hole(1, "Die Kleine Bierstube", "Fadøl", 3),
    Hole(2, "Kurts mor", "Vodka Juice", 2, SpecialRule.STRIPS, True),
    Hole(3, "Bodegaen", "Gulvtæppe", 2, SpecialRule.CARPET),
    Hole(4, "Thorkilds", "Long Island", 3, None, True),
    Hole(5, "Snevringen", "dåse øl", 2, SpecialRule.BEER_RELAY),
    Hole(6, "Tanken", "Pickle shot", 1, SpecialRule.SILENT, True),
    Hole(7, "Tokio bar", "Valgri genstand (ikke shots)", 2, SpecialRule.QUIZ),
    Hole(8, "Vinstuen", "Æselspark + 1 øl", 1, SpecialRule.NO_HANDS, True),
    Hole(9, "Sherlock Holmnes", "Guiness", 3, SpecialRule.SPLIT_THE_G),
)

HOLE_NUMBERS = frozenset(hole.number for hole in HOLES)


def get_hole(number: int) -> Optional[Hole]:
    """
    Look up a hole by its number.

    @param number: Hole number (1-9)
    @return: The matching Hole, or None when the number is off the course
    """
    if number not in HOLE_NUMBERS:
        return None
    return HOLES[number - 1]


def total_par() -> int:
    """Sum of par over the whole course. Shown for reference, never scored."""
    return sum(hole.par for hole in HOLES)


# (infraction, points added)
PENALTY_RULES: List[Tuple[str, str]] = [
    ("Drik med højre hånd", "+1"),
    ("Overtrædelse af special huller", "+2"),
    ("Spilt drink", "+1"),
    ("Ikke færdiggjort drink", "+3"),
    ("Falde", "+2"),
    ("Drikke det samme 2 hul i streg", "2 shots"),
    ("Kaste op", "+3"),
    ("Ødelægge glas", "+2"),
    ("Drikke det forkerte på scorekortet", "+3"),
]

# (action, points subtracted)
BONUS_RULES: List[Tuple[str, str]] = [
    ("Klare en challenge fra tasken", "-2"),
    ("Split the G", "-2"),
    ("3 hole in ones i streg (alle fra holdet)", "-1"),
    ("Bedste holdnavn", "-2"),
]

SPECIAL_RULE_DESCRIPTIONS: List[Tuple[str, str]] = [
    ("Water Hazard", "Der må kun tisses på disse huller!"),
    (
        "Strips",
        "Holdet bliver stripset sammen, og skal forblive stripset sammen til og "
        "med hul 4. Derefter er det muligt at blive frigjort, dette kræver dog, "
        "at man finder en saks, kniv eller lignende. Man må IKKE \"bare\" tage "
        "dem af hvis de sidder løst.",
    ),
    ("Gulvtæppe", "1 kande gulvtæppe pr. hold. Alle skal mindst tage én tår."),
    (
        "Stum",
        "Der må ikke snakkes med bartenderen overhovedet eller få andre til at "
        "bestille for sig. Denne regel må heller ikke vises oppe i baren.",
    ),
    ("Quiz", "På dette hul kommer der en quiz."),
    ("Split the G", "På dette hul kan man vælge at splitte the G."),
]


def rules_catalogue() -> Dict[str, Any]:
    """
    Get the house rules as plain data for templates and the JSON API.

    @return: Dictionary with penalties, bonuses and special rule descriptions
    """
    return {
        "penalties": [
            {"infraction": infraction, "penalty": points}
            for infraction, points in PENALTY_RULES
        ],
        "bonuses": [
            {"action": action, "bonus": points} for action, points in BONUS_RULES
        ],
        "special_rules": [
            {"name": name, "description": description}
            for name, description in SPECIAL_RULE_DESCRIPTIONS
        ],
    }
