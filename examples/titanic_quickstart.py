import pandas as pd
from time import perf_counter
from dtreepy import TreeClassifier

df = pd.read_csv("titanic.csv")
feats = ["pclass","sex","age","sibsp","parch","fare","embarked"]

Xdf = df[feats].copy()
Xdf["pclass"]   = Xdf["pclass"].astype(str)
Xdf["sex"]      = Xdf["sex"].astype(str)
Xdf["embarked"] = Xdf["embarked"].astype(str)
# numeric columns must be complete when fitting
Xdf["age"]  = Xdf["age"].fillna(Xdf["age"].median())
Xdf["fare"] = Xdf["fare"].fillna(Xdf["fare"].median())

X = Xdf.values.astype(object)
y = df["survived"].astype(int).values

clf = TreeClassifier(
    min_leaf_size=20, criterion="gini",
    feature_names=feats,
    categorical_features=["pclass","sex","embarked"],
)

t0 = perf_counter(); clf.fit(X, y); print(f"fit: {perf_counter()-t0:.3f} s")
print(f"training accuracy: {clf.score(X, y):.3f} (depth={clf.get_depth()}, leaves={clf.get_n_leaves()})")
clf.print_tree(feature_names=feats, class_names=["No","Yes"])
try:
    clf.export_graphviz("titanic_tree", feature_names=feats, class_names=["No","Yes"], format="dot")
except RuntimeError as e:
    print(f"Skipping Graphviz export: {e}")
