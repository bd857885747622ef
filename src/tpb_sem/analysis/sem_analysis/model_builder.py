"""
SEM Model Builder

측정모델과 구조모델로 이루어진 SEM 모델 스펙을 구축합니다.
semopy 모델 문법(=~, ~, ~~)으로 변환하고, 같은 문법의 텍스트를 다시 파싱할 수 있습니다.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple
import logging

logger = logging.getLogger(__name__)


# 계획된 행동이론(TPB) 기반 금욕 의도 모델
TPB_MEASUREMENT = {
    'attitudes': ['sex_fool', 'sex_harm'],
    'norms': ['frnd_sex', 'love_sex'],
    'control': ['self_cntl', 'how_ref'],
    'intention': ['int_abs', 'int_avoid']
}

TPB_STRUCTURAL = {
    'intention': ['attitudes', 'norms', 'control']
}


@dataclass(frozen=True)
class SEMModelSpec:
    """측정 + 구조 모델 스펙"""

    measurement: Dict[str, List[str]]
    structural: Dict[str, List[str]] = field(default_factory=dict)
    covariances: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def latent_variables(self) -> List[str]:
        return list(self.measurement.keys())

    @property
    def indicators(self) -> List[str]:
        items = []
        for factor_items in self.measurement.values():
            items.extend(factor_items)
        return items

    @property
    def endogenous(self) -> List[str]:
        """들어오는 경로가 있는 잠재변수"""
        return [lv for lv in self.latent_variables if self.structural.get(lv)]

    @property
    def exogenous(self) -> List[str]:
        return [lv for lv in self.latent_variables if lv not in self.endogenous]

    @property
    def regression_paths(self) -> List[Tuple[str, str]]:
        """(예측변수, 종속변수) 쌍 목록"""
        return [(pred, dep) for dep, preds in self.structural.items() for pred in preds]

    def validate(self) -> None:
        """모델 스펙 검증"""
        if not self.measurement:
            raise ValueError("측정모델이 비어 있습니다")

        seen = {}
        for factor, items in self.measurement.items():
            if len(items) < 2:
                raise ValueError(f"잠재변수 '{factor}'는 최소 2개의 지표가 필요합니다: {items}")
            for item in items:
                if item in self.measurement:
                    raise ValueError(f"지표 '{item}'가 잠재변수 이름과 겹칩니다")
                if item in seen:
                    raise ValueError(f"지표 '{item}'가 '{seen[item]}'와 '{factor}'에 중복 사용되었습니다")
                seen[item] = factor

        for dep, preds in self.structural.items():
            if dep not in self.measurement:
                raise ValueError(f"구조모델의 종속변수 '{dep}'가 잠재변수로 정의되지 않았습니다")
            for pred in preds:
                if pred not in self.measurement:
                    raise ValueError(f"구조모델의 예측변수 '{pred}'가 잠재변수로 정의되지 않았습니다")
                if pred == dep:
                    raise ValueError(f"자기 자신으로의 경로는 허용되지 않습니다: {dep}")

        known = set(self.latent_variables) | set(self.indicators)
        for left, right in self.covariances:
            if left not in known or right not in known:
                raise ValueError(f"정의되지 않은 변수의 공분산: {left} ~~ {right}")

    def to_semopy(self) -> str:
        """
        semopy 모델 문법 문자열 생성

        Returns:
            str: semopy 모델 스펙
        """
        self.validate()

        spec_lines = ["# Measurement model"]
        for factor, items in self.measurement.items():
            spec_lines.append(f"{factor} =~ " + " + ".join(items))

        if self.structural:
            spec_lines.append("")
            spec_lines.append("# Structural model")
            for dep, preds in self.structural.items():
                if preds:
                    spec_lines.append(f"{dep} ~ " + " + ".join(preds))

        if self.covariances:
            spec_lines.append("")
            spec_lines.append("# Covariances")
            for left, right in self.covariances:
                spec_lines.append(f"{left} ~~ {right}")

        return "\n".join(spec_lines)


class SEMModelBuilder:
    """SEM 모델 스펙 구축 클래스"""

    def __init__(self, correlate_exogenous: bool = True):
        """
        초기화

        Args:
            correlate_exogenous (bool): 외생 잠재변수 간 공분산 자유추정 여부
        """
        self.correlate_exogenous = correlate_exogenous

    def create_structural_model(self, measurement: Dict[str, List[str]],
                                structural: Dict[str, List[str]]) -> SEMModelSpec:
        """
        측정모델과 구조모델로 SEM 스펙 생성

        Args:
            measurement (Dict[str, List[str]]): {잠재변수: [지표들]}
            structural (Dict[str, List[str]]): {종속 잠재변수: [예측 잠재변수들]}

        Returns:
            SEMModelSpec: 모델 스펙
        """
        structural = {k: list(v) for k, v in structural.items()}
        exogenous = [lv for lv in measurement if not structural.get(lv)]

        covariances = []
        if self.correlate_exogenous:
            for i, lv1 in enumerate(exogenous):
                for lv2 in exogenous[i + 1:]:
                    covariances.append((lv1, lv2))

        spec = SEMModelSpec(
            measurement={k: list(v) for k, v in measurement.items()},
            structural=structural,
            covariances=covariances
        )

        spec.validate()
        logger.info(f"SEM 모델 생성: 잠재변수 {len(spec.latent_variables)}개, "
                    f"구조경로 {len(spec.regression_paths)}개, 공분산 {len(spec.covariances)}개")
        return spec

    def create_tpb_model(self) -> SEMModelSpec:
        """계획된 행동이론 모델 (태도, 규범, 통제 -> 의도)"""
        return self.create_structural_model(TPB_MEASUREMENT, TPB_STRUCTURAL)


def parse_model_spec(text: str) -> SEMModelSpec:
    """
    모델 문법 텍스트를 SEMModelSpec으로 파싱

    지원 문법:
        latent =~ ind1 + ind2     (측정)
        latent ~ lv1 + lv2        (구조)
        a ~~ b                    (공분산)

    Args:
        text (str): 모델 문법 텍스트

    Returns:
        SEMModelSpec: 파싱된 모델 스펙
    """
    measurement: Dict[str, List[str]] = {}
    structural: Dict[str, List[str]] = {}
    covariances: List[Tuple[str, str]] = []

    for line_no, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.split('#', 1)[0].strip()
        if not line:
            continue

        for op in ('=~', '~~', '~'):
            if op in line:
                left, right = line.split(op, 1)
                break
        else:
            raise ValueError(f"{line_no}행: 연산자(=~, ~, ~~)를 찾을 수 없습니다: {raw_line!r}")

        left = left.strip()
        terms = [t.strip() for t in right.split('+') if t.strip()]
        if not left or not terms:
            raise ValueError(f"{line_no}행: 좌변 또는 우변이 비어 있습니다: {raw_line!r}")
        if any('*' in t for t in terms):
            raise ValueError(f"{line_no}행: 고정값/레이블 파라미터는 지원하지 않습니다: {raw_line!r}")

        if op == '=~':
            measurement.setdefault(left, []).extend(terms)
        elif op == '~':
            structural.setdefault(left, []).extend(terms)
        else:
            covariances.extend((left, term) for term in terms)

    spec = SEMModelSpec(measurement, structural, covariances)
    spec.validate()
    return spec


def create_tpb_model_spec() -> SEMModelSpec:
    """기본 TPB 모델 스펙을 생성하는 편의 함수"""
    return SEMModelBuilder().create_tpb_model()
