from dataclasses import dataclass
from typing import Optional

from grnds_bot import config


@dataclass
class SkillGapWarning:
    has_warning: bool
    gap: int = 0
    highest: Optional[dict] = None
    lowest: Optional[dict] = None

    @property
    def message(self) -> str:
        if not self.has_warning:
            return ""
        return (
            f"⚠️ **Diferença grande de nível na fila!**\n"
            f"Maior: **{self.highest['name']}** [{self.highest['rank']}] ({self.highest['mmr']} MMR)\n"
            f"Menor: **{self.lowest['name']}** [{self.lowest['rank']}] ({self.lowest['mmr']} MMR)\n"
            f"Diferença: **{self.gap} MMR**. Os times podem ficar desequilibrados."
        )


def analyze_skill_gap(players: list, threshold: int = None) -> SkillGapWarning:
    """
    Compara o maior e o menor MMR da fila.
    players: dicts com 'name', 'rank' e 'mmr'. Menos de 2 jogadores nunca gera aviso.
    """
    threshold = config.SKILL_GAP_THRESHOLD if threshold is None else threshold
    valid = [p for p in players if p is not None]
    if len(valid) < 2:
        return SkillGapWarning(has_warning=False)

    ordered = sorted(valid, key=lambda p: p.get('mmr') or 0, reverse=True)
    highest, lowest = ordered[0], ordered[-1]
    gap = (highest.get('mmr') or 0) - (lowest.get('mmr') or 0)

    if gap >= threshold:
        return SkillGapWarning(has_warning=True, gap=gap, highest=highest, lowest=lowest)
    return SkillGapWarning(has_warning=False, gap=gap)
