from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass

import boto3

from autoquery import Client, Expression
from autoquery.codec import DataclassCodec


@dataclass(frozen=True)
class Movie:
    director: str
    title: str
    year: int = 0
    rating: int = 0


def _client():
    return boto3.client(
        "dynamodb",
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


def main() -> None:
    logging.basicConfig(level=logging.DEBUG if os.environ.get("AUTOQUERY_DEBUG") else logging.INFO)
    client = _client()
    table_name = f"autoquery_example_{uuid.uuid4().hex[:12]}"

    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "director", "KeyType": "HASH"}, {"AttributeName": "title", "KeyType": "RANGE"}],
        AttributeDefinitions=[
            {"AttributeName": "director", "AttributeType": "S"},
            {"AttributeName": "title", "AttributeType": "S"},
            {"AttributeName": "rating", "AttributeType": "N"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "ratingIndex",
                "KeySchema": [{"AttributeName": "rating", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)

    try:
        movies = Client(client).table(table_name, codec=DataclassCodec(Movie))

        movies.put(Movie(director="Clint Eastwood", title="The Mule", year=2018, rating=7))
        movies.put(Movie(director="Clint Eastwood", title="Unforgiven", year=1992, rating=8))
        movies.put(Movie(director="Clint Eastwood", title="The Outlaw Josey Wales", year=1976, rating=8))

        print("get:", movies.get({"director": "Clint Eastwood", "title": "Unforgiven"}))

        by_title = Expression().equal("director", "Clint Eastwood").begins_with("title", "The ")
        print("index for title prefix:", movies.choose_index(by_title).name)
        print("title begins_with('The '):", list(movies.query(by_title)))

        by_rating = Expression().equal("rating", 8)
        for evaluation in movies.explain(by_rating):
            print(f"  {evaluation.index.name}: score={evaluation.score} infractions={list(evaluation.infractions)}")
        print("rating == 8:", list(movies.query(by_rating)))
    finally:
        client.delete_table(TableName=table_name)


if __name__ == "__main__":
    main()
