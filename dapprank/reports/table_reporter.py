from tabulate import tabulate
from ..models import RankScore

CATEGORY_LABELS = [('distribution', 'Distribution'), ('networking', 'Networking'), ('governance', 'Governance'), ('manifest', 'Manifest')]

class TableReporter:

    def __init__(self, format_style: str='grid'):
        self.format_style = format_style

    def generate_report(self, ens_name: str, score: RankScore) -> str:
        lines = []
        lines.append('=' * 80)
        lines.append(f'Dapp Rank Score: {ens_name}')
        lines.append('=' * 80)
        lines.append('')
        summary_data = [['Overall Score', f'{score.overall_score} / {score.max_score}'], ['Rank Version', score.rank_version]]
        lines.append(tabulate(summary_data, tablefmt=self.format_style))
        lines.append('')
        lines.append('Score by Category:')
        category_data = []
        for key, label in CATEGORY_LABELS:
            category = score.categories.get(key)
            if category is None:
                continue
            category_data.append([label, category.score, category.max_score])
        lines.append(tabulate(category_data, headers=['Category', 'Score', 'Max'], tablefmt=self.format_style))
        lines.append('')
        return '\n'.join(lines)

    def save_report(self, ens_name: str, score: RankScore, output_path: str):
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(self.generate_report(ens_name, score))
