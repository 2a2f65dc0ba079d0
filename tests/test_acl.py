import json
import unittest

from src.domain.exceptions import ParseError
from src.infrastructure.acl import GitHubTranslator


class TestGitHubTranslator(unittest.TestCase):
    def test_repo_stats_ignores_unknown_keys(self) -> None:
        raw_body = json.dumps({
            "id": 1296269,
            "full_name": "octocat/Hello-World",
            "stargazers_count": 80,
            "forks_count": 9,
            "subscribers_count": 42,
            "owner": {"login": "octocat"},
        })

        stats = GitHubTranslator.to_repo_stats(raw_body)

        self.assertEqual(stats.stargazers_count, 80)
        self.assertEqual(stats.forks_count, 9)
        self.assertEqual(stats.subscribers_count, 42)

    def test_repo_stats_missing_field_raises(self) -> None:
        raw_body = json.dumps({"stargazers_count": 80, "forks_count": 9})

        with self.assertRaises(ParseError):
            GitHubTranslator.to_repo_stats(raw_body)

    def test_traffic_count(self) -> None:
        raw_body = json.dumps({
            "count": 173,
            "uniques": 128,
            "clones": [{"timestamp": "2016-10-10T00:00:00Z", "count": 2, "uniques": 1}],
        })

        traffic = GitHubTranslator.to_traffic(raw_body)

        self.assertEqual(traffic.count, 173)
        self.assertEqual(traffic.uniques, 128)

    def test_org_followers(self) -> None:
        stats = GitHubTranslator.to_org_stats(json.dumps({"login": "github", "followers": 20}))
        self.assertEqual(stats.followers, 20)

    def test_malformed_json_raises(self) -> None:
        with self.assertRaises(ParseError):
            GitHubTranslator.to_org_stats("<html>Bad gateway</html>")

    def test_wrong_type_raises(self) -> None:
        with self.assertRaises(ParseError):
            GitHubTranslator.to_traffic(json.dumps({"count": "many"}))
