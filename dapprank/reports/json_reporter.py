import json
from ..models import RankScore

class JSONReporter:

    def __init__(self, pretty: bool=True):
        self.pretty = pretty

    def generate_report(self, ens_name: str, score: RankScore) -> str:
        report_dict = {'ensName': ens_name, **score.serialize()}
        if self.pretty:
            return json.dumps(report_dict, indent=2, default=str)
        return json.dumps(report_dict, default=str)

    def save_report(self, ens_name: str, score: RankScore, output_path: str):
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(self.generate_report(ens_name, score))
