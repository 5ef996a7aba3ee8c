import json
from datetime import datetime

import pytest

from nibbler.documents import JsonDocument
from nibbler.errors import SelectorSyntaxError
from nibbler.schema import JsonSchema, Schema


def make_twitter():
    twitter = JsonSchema("Twitter")

    def tweet(t):
        t.element("created_at", using=lambda value: datetime.strptime(value, "%a %b %d %H:%M:%S %z %Y"))
        t.element("text")
        t.element("id")
        t.element({"user": "author"}, nested=lambda user: (
            user.element("name", "full_name"),
            user.element("screen_name", "username"),
        ))

    twitter.elements("tweets", nested=tweet)
    return twitter


class TestTwitter:

    @pytest.fixture
    def timeline(self, tweets):
        return make_twitter().parse(json.dumps(tweets))

    def test_tweets(self, timeline):
        assert len(timeline.tweets) == 2
        assert timeline.tweets[0].text == "It is OK being wrong."

    def test_scalars_pass_through(self, timeline):
        assert timeline.tweets[0].id == 5083117521
        assert isinstance(timeline.tweets[0].id, int)

    def test_converter(self, timeline):
        created = timeline.tweets[1].created_at
        assert (created.year, created.month, created.day) == (2009, 10, 19)

    def test_nested_author(self, timeline):
        authors = [t.author.username for t in timeline.tweets]
        assert authors == ["ryanbigg", "rbates"]
        assert timeline.tweets[0].author.full_name == "Ryan Bigg"

    def test_to_mapping_is_plain_data(self, timeline):
        mapping = timeline.to_mapping()
        author = mapping["tweets"][1]["author"]
        assert author == {"full_name": "Ryan Bates", "username": "rbates"}

    def test_parse_bytes_and_data(self, tweets):
        twitter = make_twitter()
        from_bytes = twitter.parse(json.dumps(tweets).encode())
        from_data = twitter.parse(tweets)
        assert from_bytes.to_mapping() == from_data.to_mapping()


class TestJsonExtraction:
    DATA = {
        "site": "example",
        "people": [
            {"name": "Tom", "age": 31, "langs": ["ruby", "python"]},
            {"name": "Ann", "age": 17, "langs": []},
        ],
    }

    def test_singular_takes_first_match(self):
        schema = JsonSchema()
        schema.element("$.people[?(@.age > 1)].name", "name")
        assert schema.parse(self.DATA).name == "Tom"

    def test_singular_without_match_is_none(self):
        schema = JsonSchema()
        schema.element("$.nobody.name", "name")
        assert schema.parse(self.DATA).to_mapping() == {"name": None}

    def test_plural_without_match_is_empty(self):
        schema = JsonSchema()
        schema.elements("$..nickname", "nicknames")
        assert schema.parse(self.DATA).nicknames == []

    def test_filter_selector(self):
        schema = JsonSchema()
        schema.elements("$.people[?(@.age >= 18)].name", "adults")
        assert schema.parse(self.DATA).adults == ["Tom"]

    def test_recursive_descent_selector(self):
        schema = JsonSchema()
        schema.elements("$..langs", "langs")
        assert schema.parse(self.DATA).langs == ["ruby", "python"]

    def test_nested_schema_reaches_root(self):
        schema = JsonSchema()
        schema.elements("$.people", "people", nested=lambda person: (
            person.element("name"),
            person.element("$.site", "site"),
        ))

        record = schema.parse(self.DATA)

        assert [p.to_mapping() for p in record.people] == [
            {"name": "Tom", "site": "example"},
            {"name": "Ann", "site": "example"},
        ]

    def test_filters_follow_nested_documents(self):
        schema = JsonSchema()
        schema.elements("$.people", "people", nested=lambda person: person.elements("langs[?(short)]", "short_langs"))
        doc = JsonDocument(self.DATA, filters={"short": lambda lang: len(lang) <= 4})

        record = schema.parse(doc)

        assert [p.short_langs for p in record.people] == [["ruby"], []]

    def test_arbitrarily_deep_nesting(self):
        data = {"a": {"b": {"c": {"d": "deep"}}}}
        schema = JsonSchema()
        schema.element("a", nested=lambda a: a.element("b", nested=lambda b: b.element(
            "c", nested=lambda c: c.element("d")
        )))

        assert schema.parse(data).to_mapping() == {"a": {"b": {"c": {"d": "deep"}}}}

    def test_malformed_selector_aborts_parse(self):
        schema = JsonSchema()
        schema.elements("items[?(unterminated", "items")
        with pytest.raises(SelectorSyntaxError):
            schema.parse({"items": []})

    def test_json_data_with_default_schema(self):
        schema = Schema()
        schema.element("name")
        assert schema.parse({"name": "plain"}).name == "plain"


class TestDefinitions:

    def test_from_definition(self, blog_html):
        schema = Schema.from_definition({
            "name": "Blog",
            "rules": [
                {"property": "title"},
                {"selector": "#nav li", "property": "navigation_items", "plural": True},
                {
                    "selector": "div.hentry",
                    "property": "articles",
                    "plural": True,
                    "rules": [
                        {"selector": "h1", "property": "title"},
                        {"selector": "p.pubdate", "property": "published", "with": "strip_prefix:Published on "},
                    ],
                },
            ],
        })

        record = schema.parse(blog_html)

        assert record.to_mapping() == {
            "title": "Maximum awesome",
            "navigation_items": ["Home", "About", "Help"],
            "articles": [
                {"title": "First article", "published": "Oct 1"},
                {"title": "Second article", "published": "Sep 5"},
            ],
        }

    def test_json_definition(self, tweets):
        schema = Schema.from_definition({
            "type": "json",
            "rules": [
                {"property": "tweets", "plural": True, "rules": [
                    {"property": "id"},
                    {"selector": "$..followers_count", "property": "followers", "plural": True},
                ]},
            ],
        })

        assert isinstance(schema, JsonSchema)
        record = schema.parse(tweets)
        assert [t.followers for t in record.tweets] == [[432, 3225], [432, 3225]]

    def test_invalid_definition(self):
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            Schema.from_definition({"rules": []})
        with pytest.raises(ValidationError):
            Schema.from_definition({"rules": [{"selector": "h1"}]})
