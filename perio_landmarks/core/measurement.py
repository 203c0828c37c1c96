"""
牙周测量模块

由标志点计算根长、骨吸收量和骨吸收百分比，并给出牙周炎分期。
"""

from typing import Any, Dict
from loguru import logger

from ..models import LandmarkTriple
from ..utils.math_utils import calculate_distance


PERIODONTAL_STAGES = {
    'none': {
        'label': 'No Periodontitis',
        'prognosis': 'Good',
        'range': (0, 15),
        'description': 'No radiographic bone loss beyond physiological levels.',
        'recommendations': ['Routine recall'],
    },
    'stage_i': {
        'label': 'Stage I - Initial Periodontitis',
        'prognosis': 'Good',
        'range': (0, 15),
        'description': 'Early stage periodontal disease with minimal bone loss.',
        'recommendations': [
            'Improved oral hygiene',
            'Regular professional cleaning',
            'Monitoring at 6-month intervals',
        ],
    },
    'stage_ii': {
        'label': 'Stage II - Moderate Periodontitis',
        'prognosis': 'Fair',
        'range': (15, 33),
        'description': 'Established periodontal disease with moderate bone loss.',
        'recommendations': [
            'Deep cleaning (SRP)',
            'More frequent recalls',
            'Possible localized therapy',
        ],
    },
    'stage_iii': {
        'label': 'Stage III - Severe Periodontitis',
        'prognosis': 'Questionable',
        'range': (33, 50),
        'description': 'Advanced periodontal disease with significant bone loss.',
        'recommendations': [
            'Comprehensive periodontal therapy',
            'Possible surgical intervention',
            'Frequent maintenance',
        ],
    },
    'stage_iv': {
        'label': 'Stage IV - Advanced Periodontitis',
        'prognosis': 'Poor',
        'range': (50, 100),
        'description': 'Severe periodontal disease with risk of tooth loss.',
        'recommendations': [
            'Advanced periodontal surgery',
            'Possible extraction consideration',
            'Intensive maintenance protocol',
        ],
    },
}


def classify_periodontal_stage(bone_loss_percentage: float, bone_loss_mm: float) -> str:
    """
    根据骨吸收百分比和骨吸收量确定牙周炎分期

    Args:
        bone_loss_percentage: 骨吸收百分比
        bone_loss_mm: CEJ到骨嵴的距离（毫米）

    Returns:
        PERIODONTAL_STAGES 中的键，无法判断时返回 'undetermined'
    """
    pct, mm = bone_loss_percentage, bone_loss_mm

    if pct < 15 and mm < 2:
        return 'none'
    if pct <= 15 and mm <= 2:
        return 'stage_i'
    if pct <= 33 and mm <= 3:
        return 'stage_ii'
    if 33 < pct <= 50 or 3 < mm <= 5:
        return 'stage_iii'
    if pct > 50 or mm > 5:
        return 'stage_iv'
    return 'undetermined'


def calculate_measurements(landmarks: LandmarkTriple,
                           pixels_per_mm: float = 7.0) -> Dict[str, Any]:
    """
    计算牙周测量值

    Args:
        landmarks: 通过校验的标志点
        pixels_per_mm: 像素/毫米比例

    Returns:
        测量结果字典，长度单位为毫米，保留一位小数
    """
    if pixels_per_mm <= 0:
        raise ValueError(f"pixels_per_mm 必须为正数: {pixels_per_mm}")

    root_length = calculate_distance(landmarks.cej, landmarks.apex) / pixels_per_mm
    bone_loss = calculate_distance(landmarks.cej, landmarks.bone) / pixels_per_mm
    bone_to_apex = calculate_distance(landmarks.bone, landmarks.apex) / pixels_per_mm

    percentage = bone_loss / root_length * 100 if root_length > 0 else 0.0
    stage_key = classify_periodontal_stage(percentage, bone_loss)
    stage = PERIODONTAL_STAGES.get(stage_key, {})

    measurements = {
        'root_length_mm': round(root_length, 1),
        'bone_loss_mm': round(bone_loss, 1),
        'bone_to_apex_mm': round(bone_to_apex, 1),
        'bone_loss_percentage': round(percentage, 1),
        'cej_y_mm': round(landmarks.cej.y / pixels_per_mm, 1),
        'bone_y_mm': round(landmarks.bone.y / pixels_per_mm, 1),
        'apex_y_mm': round(landmarks.apex.y / pixels_per_mm, 1),
        'periodontal_stage': stage_key,
        'stage_label': stage.get('label', 'Not determined'),
        'prognosis': stage.get('prognosis', 'Unknown'),
    }

    logger.bind(stage="measurement").info(
        f"骨吸收 {measurements['bone_loss_percentage']}% "
        f"({measurements['bone_loss_mm']} mm), 分期: {measurements['stage_label']}")
    return measurements
