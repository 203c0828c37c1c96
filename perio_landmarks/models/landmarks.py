"""
牙周标志点数据模型

定义检测流程中使用的点、垂直片段、牙齿列和最终标志点三元组。
所有结构仅在一次检测调用中存在，不跨调用共享。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional


class Point2D(NamedTuple):
    """整数像素坐标 (x, y)，相等性即坐标相等"""
    x: int
    y: int

    def to_dict(self) -> Dict[str, int]:
        return {'x': int(self.x), 'y': int(self.y)}


class Decision(NamedTuple):
    """流程中的一个决策点，供调用方和测试检查"""
    stage: str
    outcome: str
    details: Dict[str, Any]


@dataclass
class PointGroup:
    """带评分的非空点集，提供水平位置和垂直跨度"""
    points: List[Point2D]
    score: float = 0.0

    def __len__(self) -> int:
        return len(self.points)

    @property
    def mean_x(self) -> float:
        return sum(p.x for p in self.points) / len(self.points)

    @property
    def vertical_spread(self) -> int:
        ys = [p.y for p in self.points]
        return max(ys) - min(ys)

    @property
    def max_x_deviation(self) -> float:
        """x坐标偏离平均值的最大距离"""
        center = self.mean_x
        return max(abs(p.x - center) for p in self.points)


@dataclass
class Segment(PointGroup):
    """沿同一垂直结构分布的边缘点集合"""


@dataclass
class ToothColumn(PointGroup):
    """按x坐标划分出的候选牙齿列"""


@dataclass
class LandmarkTriple:
    """CEJ、牙槽骨嵴、根尖三个标志点"""
    cej: Point2D
    bone: Point2D
    apex: Point2D

    def as_dict(self) -> Dict[str, Point2D]:
        return {'cej': self.cej, 'bone': self.bone, 'apex': self.apex}

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {name: point.to_dict() for name, point in self.as_dict().items()}


@dataclass
class DebugArtifacts:
    """可视化调试用的中间结果"""
    edges: List[Point2D] = field(default_factory=list)
    clusters: List[List[Point2D]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'edges': [p.to_dict() for p in self.edges],
            'clusters': [[p.to_dict() for p in cluster] for cluster in self.clusters],
        }


@dataclass
class DetectionResult:
    """
    一次检测的结果

    成功时 landmarks 非空且 warnings 为空；
    失败时 landmarks 为 None，warnings 中给出需要手动标注的提示。
    """
    landmarks: Optional[LandmarkTriple] = None
    warnings: List[str] = field(default_factory=list)
    debug: Optional[DebugArtifacts] = None
    decisions: List[Decision] = field(default_factory=list)
    info: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.landmarks is not None

    def record(self, stage: str, outcome: str, **details: Any) -> None:
        self.decisions.append(Decision(stage, outcome, details))

    def find_decision(self, stage: str) -> Optional[Decision]:
        """返回指定阶段的最后一个决策"""
        for decision in reversed(self.decisions):
            if decision.stage == stage:
                return decision
        return None

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        data = {
            'success': self.success,
            'landmarks': self.landmarks.to_dict() if self.landmarks else None,
            'warnings': list(self.warnings),
            'decisions': [
                {'stage': d.stage, 'outcome': d.outcome, 'details': d.details}
                for d in self.decisions
            ],
            'info': dict(self.info),
        }
        if include_debug and self.debug is not None:
            data['debug'] = self.debug.to_dict()
        return data
