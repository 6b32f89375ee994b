from polygon_weather.cli import main

main()
