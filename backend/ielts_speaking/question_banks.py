"""
IELTS speaking question banks, organized by common IELTS themes.

Each bank holds Part 1 interview questions, one Part 2 cue card and Part 3
discussion questions.
"""

from __future__ import annotations

import random
from typing import Dict, List, Literal, Optional

from .errors import UnknownTopicError
from .schemas import CueCard

Part = Literal["part1", "part3"]

QUESTION_TOPICS: Dict[str, str] = {
	"WORK_STUDY": "Work & Study",
	"HOMETOWN": "Hometown & Home",
	"HOBBIES": "Hobbies & Interests",
	"FOOD": "Food & Cooking",
	"TRAVEL": "Travel & Places",
	"TECHNOLOGY": "Technology & Media",
	"FAMILY": "Family & Relationships",
	"ENVIRONMENT": "Environment & Nature",
	"HEALTH": "Health & Fitness",
	"CULTURE": "Culture & Traditions",
}

QUESTION_BANKS: Dict[str, Dict] = {
	"WORK_STUDY": {
		"part1": [
			"What do you do? Do you work or are you a student?",
			"What subject are you studying?",
			"Why did you choose this field of study?",
			"What do you like most about your job/studies?",
			"Do you think you will change your job/field in the future?",
			"What are your responsibilities at work?",
			"Do you prefer to work in a team or alone?",
			"How do you balance your work/study life?",
		],
		"part2": {
			"title": "Describe a job you would like to have in the future",
			"prompts": [
				"What the job is",
				"What qualifications you need for this job",
				"What you would do in this job",
				"And explain why you would like to have this job",
			],
		},
		"part3": [
			"What qualities make someone a good employee?",
			"How has technology changed the workplace?",
			"Do you think work-life balance is important? Why?",
			"What skills will be important for future jobs?",
			"Should companies offer flexible working hours?",
		],
	},
	"HOMETOWN": {
		"part1": [
			"Where are you from?",
			"Do you like your hometown? Why or why not?",
			"What's special about your hometown?",
			"Has your hometown changed much over the years?",
			"Would you like to live in your hometown in the future?",
			"What do you like about your neighborhood?",
			"Do you know your neighbors well?",
			"Is there anything you would change about your hometown?",
		],
		"part2": {
			"title": "Describe a place in your hometown that you like to visit",
			"prompts": [
				"Where it is",
				"How often you go there",
				"What you do there",
				"And explain why you like this place",
			],
		},
		"part3": [
			"How have cities changed in your country?",
			"What are the advantages of living in a city versus countryside?",
			"How can cities be made more livable?",
			"What environmental challenges do cities face?",
			"Will people continue to move to cities in the future?",
		],
	},
	"HOBBIES": {
		"part1": [
			"What do you like to do in your free time?",
			"Do you have any hobbies?",
			"When did you start this hobby?",
			"Do you think hobbies are important? Why?",
			"Have your hobbies changed since you were a child?",
			"Do you prefer indoor or outdoor activities?",
			"Do you like to try new activities?",
			"What hobbies are popular in your country?",
		],
		"part2": {
			"title": "Describe a hobby you enjoy doing",
			"prompts": [
				"What the hobby is",
				"When and how you do it",
				"Who you do it with",
				"And explain why you enjoy this hobby",
			],
		},
		"part3": [
			"Why do people need hobbies?",
			"How can hobbies benefit people's mental health?",
			"Do you think people have less time for hobbies now than in the past?",
			"Should children be encouraged to have hobbies?",
			"Can hobbies become careers?",
		],
	},
	"FOOD": {
		"part1": [
			"What's your favorite food?",
			"Do you like cooking? Why or why not?",
			"What kinds of food are popular in your country?",
			"Do you prefer home-cooked food or restaurant food?",
			"Have your food preferences changed over time?",
			"Do you like trying new foods?",
			"How often do you eat out?",
			"What's a traditional dish from your country?",
		],
		"part2": {
			"title": "Describe a meal that you enjoyed",
			"prompts": [
				"What you ate",
				"Where you had this meal",
				"Who you were with",
				"And explain why you enjoyed this meal",
			],
		},
		"part3": [
			"How has the way people eat changed in recent years?",
			"Why is fast food so popular?",
			"Should governments regulate unhealthy foods?",
			"How important is food culture to a country's identity?",
			"Will people eat differently in the future?",
		],
	},
	"TRAVEL": {
		"part1": [
			"Do you like traveling? Why or why not?",
			"What places have you visited?",
			"Do you prefer traveling alone or with others?",
			"What kind of places do you like to visit?",
			"Do you like to plan your trips or be spontaneous?",
			"What's the longest trip you've taken?",
			"Would you like to travel more in the future?",
			"Do you prefer domestic or international travel?",
		],
		"part2": {
			"title": "Describe a place you have visited that you would recommend to others",
			"prompts": [
				"Where it is",
				"When you went there",
				"What you did there",
				"And explain why you would recommend this place",
			],
		},
		"part3": [
			"How has tourism changed in recent decades?",
			"What are the positive and negative effects of tourism?",
			"How can tourism be more sustainable?",
			"Why do people like to travel to different countries?",
			"Will virtual reality replace real travel in the future?",
		],
	},
	"TECHNOLOGY": {
		"part1": [
			"Do you use technology a lot?",
			"What technology do you use every day?",
			"How has technology changed your life?",
			"Do you like learning about new technology?",
			"What social media do you use?",
			"How much time do you spend on your phone?",
			"Do you think you use technology too much?",
			"What technology would you like to learn about?",
		],
		"part2": {
			"title": "Describe a piece of technology you find useful",
			"prompts": [
				"What it is",
				"When you got it",
				"How you use it",
				"And explain why you find it useful",
			],
		},
		"part3": [
			"How has technology changed communication?",
			"What are the advantages and disadvantages of social media?",
			"Will artificial intelligence replace human jobs?",
			"How can we protect our privacy online?",
			"What technology will be important in the future?",
		],
	},
	"FAMILY": {
		"part1": [
			"Do you have a large family?",
			"How much time do you spend with your family?",
			"What do you like to do with your family?",
			"Are you close to your family members?",
			"Who are you closest to in your family?",
			"Do you prefer spending time with family or friends?",
			"How often do you see your extended family?",
			"What family traditions do you have?",
		],
		"part2": {
			"title": "Describe a family member you admire",
			"prompts": [
				"Who this person is",
				"What they are like",
				"What they have done",
				"And explain why you admire them",
			],
		},
		"part3": [
			"How have family structures changed in modern society?",
			"What is the role of grandparents in raising children?",
			"How important is family in your culture?",
			"What challenges do families face today?",
			"Will families be different in the future?",
		],
	},
	"ENVIRONMENT": {
		"part1": [
			"Do you care about environmental issues?",
			"What do you do to protect the environment?",
			"Do you prefer city life or countryside?",
			"How often do you spend time in nature?",
			"What environmental problems concern you most?",
			"Do you recycle?",
			"How can individuals help the environment?",
			"Is environmental education important?",
		],
		"part2": {
			"title": "Describe an environmental problem in your country",
			"prompts": [
				"What the problem is",
				"What causes this problem",
				"How it affects people",
				"And explain what can be done to solve this problem",
			],
		},
		"part3": [
			"What are the biggest environmental challenges we face?",
			"Should governments or individuals take more responsibility for the environment?",
			"How can we encourage people to be more eco-friendly?",
			"What role does technology play in solving environmental problems?",
			"Will climate change affect future generations significantly?",
		],
	},
	"HEALTH": {
		"part1": [
			"Do you think you have a healthy lifestyle?",
			"What do you do to stay healthy?",
			"Do you exercise regularly?",
			"How much sleep do you usually get?",
			"Do you think people are healthier now than in the past?",
			"What kind of exercise do you like?",
			"Do you think mental health is as important as physical health?",
			"How do you manage stress?",
		],
		"part2": {
			"title": "Describe a healthy habit you have",
			"prompts": [
				"What the habit is",
				"When you started it",
				"How you maintain it",
				"And explain why it is important to you",
			],
		},
		"part3": [
			"Why are people becoming more health-conscious?",
			"What are the main health problems in modern society?",
			"Should governments invest more in healthcare or prevention?",
			"How has technology affected people's health?",
			"What will healthcare look like in the future?",
		],
	},
	"CULTURE": {
		"part1": [
			"What cultural traditions are important in your country?",
			"Do you celebrate traditional festivals?",
			"What's your favorite festival or celebration?",
			"Have you learned about other cultures?",
			"Do you think it's important to preserve cultural traditions?",
			"What traditional foods do you enjoy?",
			"How do young people view traditions in your country?",
			"Do you speak any other languages?",
		],
		"part2": {
			"title": "Describe a traditional celebration in your country",
			"prompts": [
				"What the celebration is",
				"When it takes place",
				"How people celebrate",
				"And explain why this celebration is important",
			],
		},
		"part3": [
			"How is globalization affecting traditional cultures?",
			"Should countries try to preserve their cultural identity?",
			"What can people learn from other cultures?",
			"How can cultural heritage be protected?",
			"Will cultural differences decrease in the future?",
		],
	},
}


def _bank(topic: str) -> Dict:
	try:
		return QUESTION_BANKS[topic]
	except KeyError:
		raise UnknownTopicError(topic) from None


def is_topic(topic: Optional[str]) -> bool:
	return topic in QUESTION_BANKS


def get_questions(topic: str, part: Part) -> List[str]:
	return list(_bank(topic)[part])


def get_random_questions(topic: str, part: Part, count: int, rng: Optional[random.Random] = None) -> List[str]:
	"""Return up to ``count`` distinct questions from the topic's bank, shuffled."""
	questions = _bank(topic)[part]
	if count <= 0:
		return []
	return (rng or random).sample(questions, min(count, len(questions)))


def get_cue_card(topic: str) -> CueCard:
	return CueCard(**_bank(topic)["part2"])
