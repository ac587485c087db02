from tidyground.compute import MeanAggregation
from tidyground.dataframe import Dataframe

band = Dataframe.from_pydict(
    {
        "name": ["Mick", "John", "Paul", "George"],
        "band": ["Stones", "Beatles", "Beatles", "Beatles"],
    }
)
instruments = Dataframe.from_rows(
    [
        {"name": "John", "plays": "guitar", "born": 1940},
        {"name": "Paul", "plays": "bass", "born": 1942},
        {"name": "Keith", "plays": "guitar", "born": 1943},
    ]
)

print(band.left_join(instruments, by="name"))
print()
print(band.anti_join(instruments, by="name"))
print()
print(
    band.full_join(instruments, by="name")
    .group_by("band")
    .summarise(n="n", born=MeanAggregation("born", na_rm=True))
)
