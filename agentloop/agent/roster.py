"""
Agent Roster
============

Role profiles. An agent's specialisation is data: the same ``Agent``
class runs every role, only the profile (and so the prompt persona)
changes.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RoleProfile:
    """
    Attributes:
        key: Stable identifier ("analyst", "technical", "manager")
        name: Localized display name
        label: Localized role, used as the persona in prompts
        expertise: Localized expertise areas
    """
    key: str
    name: str
    label: str
    expertise: tuple[str, ...] = ()


_PROFILES: dict[str, dict[str, RoleProfile]] = {
    "zh": {
        "analyst": RoleProfile(
            "analyst", "分析师", "需求分析专家",
            ("需求分析", "问题诊断", "解决方案设计", "风险评估")
        ),
        "technical": RoleProfile(
            "technical", "技术专家", "技术实现专家",
            ("代码开发", "系统架构", "技术选型", "性能优化")
        ),
        "manager": RoleProfile(
            "manager", "项目经理", "项目管理专家",
            ("项目规划", "资源协调", "进度管理", "质量控制")
        ),
    },
    "en": {
        "analyst": RoleProfile(
            "analyst", "Analyst", "Requirements Analysis Expert",
            ("Requirements Analysis", "Problem Diagnosis", "Solution Design", "Risk Assessment")
        ),
        "technical": RoleProfile(
            "technical", "Technical Expert", "Technical Implementation Expert",
            ("Code Development", "System Architecture", "Technology Selection", "Performance Optimization")
        ),
        "manager": RoleProfile(
            "manager", "Project Manager", "Project Management Expert",
            ("Project Planning", "Resource Coordination", "Progress Management", "Quality Control")
        ),
    },
}

ROSTER_ORDER = ("analyst", "technical", "manager")


def get_profile(key: str, language: str = "zh") -> RoleProfile:
    """
    Raises:
        KeyError: For an unknown role key
    """
    return _PROFILES["zh" if language.startswith("zh") else "en"][key]


def default_roster(language: str = "zh") -> list[RoleProfile]:
    """The multi-agent roster: analyst, technical expert, project manager."""
    return [get_profile(key, language) for key in ROSTER_ORDER]
