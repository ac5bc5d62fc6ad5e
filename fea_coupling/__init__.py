"""FEA 커플링 어댑터.

유한요소 솔버의 경계 적분점 데이터를 외부 커플링 서비스(preCICE)와 교환한다.
"""

__version__ = "0.1.0"
